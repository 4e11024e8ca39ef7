"""Warp route deployment workflow.

One run walks through a fixed sequence of stages:

1. ``INFRA_SETUP``: ``registry init``, ``core init`` and ``core deploy``.
2. ``ROUTE_INIT``: validate the caller's warp route document.
3. ``ROUTE_DEPLOY_DECISION``: ask the deploy policy, then ``warp deploy``.
4. ``PER_CHAIN_RECONCILE``: for every target chain, ``core read`` and feed
   the captured output verbatim into ``core apply``.

Any failure moves the run to ``FAILED`` and is raised to the caller. There is
no rollback of commands that already ran and no retry.
"""

from __future__ import annotations

import re
import shlex
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from warpdeploy.app.config import DeploymentSettings
from warpdeploy.domain.errors import ConfigError
from warpdeploy.domain.models import ConfigFormat, CoreConfig, WarpRouteConfig
from warpdeploy.infrastructure.observability import (
    Timer,
    get_logger,
    log_context,
    record_deployment,
)
from warpdeploy.infrastructure.process import AsyncioProcessManager, ProcessManager
from warpdeploy.services.runner import (
    Command,
    CommandFailedError,
    CommandOutput,
    CommandRunner,
)

_CHAIN_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class DeploymentStage(str, Enum):
    INFRA_SETUP = "infra_setup"
    ROUTE_INIT = "route_init"
    ROUTE_DEPLOY_DECISION = "route_deploy_decision"
    PER_CHAIN_RECONCILE = "per_chain_reconcile"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DeploymentError(Exception):
    """Base class for failures that end a deployment run."""

    def __init__(self, message: str, *, stage: DeploymentStage) -> None:
        super().__init__(message)
        self.stage = stage
        self.report: DeploymentReport | None = None


class ConfigurationInvalid(DeploymentError):
    """Raised when a caller-supplied document is rejected by the model."""

    def __init__(
        self, document: str, cause: ConfigError, *, stage: DeploymentStage
    ) -> None:
        super().__init__(f"Invalid {document} config: {cause}", stage=stage)
        self.document = document
        self.cause = cause


class DeploymentStepFailed(DeploymentError):
    """Raised when an external command fails; names the offending step."""

    def __init__(self, step: str, cause: BaseException, *, stage: DeploymentStage) -> None:
        super().__init__(f"Step '{step}' failed during {stage.value}: {cause}", stage=stage)
        self.step = step
        self.cause = cause


# ---------------------------------------------------------------------------
# Infrastructure plans
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FreshInfra:
    """Deploy new core contracts from the configured template."""


@dataclass(frozen=True)
class ReuseInfra:
    """Start from an existing core deployment described by ``core_config``."""

    core_config: CoreConfig


InfraPlan = Union[FreshInfra, ReuseInfra]


def plan_infra(
    existing_core_config: bytes | None,
    fmt: ConfigFormat = ConfigFormat.YAML,
) -> InfraPlan:
    """Turn the caller's optional core config bytes into an :data:`InfraPlan`.

    ``None`` and empty bytes both mean "no existing deployment".
    """
    if not existing_core_config:
        return FreshInfra()
    try:
        return ReuseInfra(CoreConfig.from_bytes(existing_core_config, fmt))
    except ConfigError as exc:
        raise ConfigurationInvalid("core", exc, stage=DeploymentStage.INFRA_SETUP) from exc


# ---------------------------------------------------------------------------
# Command construction
# ---------------------------------------------------------------------------


class HyperlaneCommands:
    """Builds the ``(name, command)`` pairs handed to the runner."""

    def __init__(self, binary: str = "hyperlane", core_template: str | None = None) -> None:
        self.binary = binary
        self.core_template = core_template

    @staticmethod
    def _check_chain(chain: str) -> str:
        if not _CHAIN_NAME_RE.match(chain):
            raise ValueError(f"Invalid chain name {chain!r}")
        return chain

    def registry_init(self) -> Command:
        return ("run registry init", f"{self.binary} registry init")

    def core_init(self, plan: InfraPlan, advanced: bool) -> Command:
        command = f"{self.binary} core init"
        if advanced:
            command += " --advanced"
        if isinstance(plan, FreshInfra) and self.core_template:
            command += f" --config {shlex.quote(self.core_template)}"
        name = "run core init --advanced" if advanced else "run core init"
        return (name, command)

    def core_deploy(self) -> Command:
        return ("run core deploy", f"{self.binary} core deploy")

    def warp_deploy(self) -> Command:
        return ("run warp deploy", f"{self.binary} warp deploy")

    def core_read(self, chain: str) -> Command:
        chain = self._check_chain(chain)
        return (f"run core read --chain {chain}", f"{self.binary} core read --chain {chain}")

    def core_apply(self, chain: str, read_output: str) -> Command:
        """Build the apply step around the exact text ``core read`` printed."""
        chain = self._check_chain(chain)
        return (
            f"run core apply --chain {chain}",
            f"{self.binary} core apply --chain {chain} --input '{read_output}'",
        )

    def infra_batch(self, plan: InfraPlan, advanced: bool) -> list[Command]:
        return [self.registry_init(), self.core_init(plan, advanced), self.core_deploy()]


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------


@dataclass
class StepRecord:
    stage: DeploymentStage
    name: str
    command: str
    output: str


@dataclass
class DeploymentReport:
    """What happened during one run, in execution order."""

    run_id: str
    stage: DeploymentStage = DeploymentStage.INFRA_SETUP
    reused_core_config: CoreConfig | None = None
    warp_route: WarpRouteConfig | None = None
    deployed: bool = False
    reconciled_chains: list[str] = field(default_factory=list)
    steps: list[StepRecord] = field(default_factory=list)
    failed_stage: DeploymentStage | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.stage is DeploymentStage.DONE

    @property
    def outputs(self) -> CommandOutput:
        return {step.name: step.output for step in self.steps}

    @property
    def status_code(self) -> int:
        return 0 if self.succeeded else 1


DeployPolicy = Callable[[WarpRouteConfig], bool]


def always_deploy(_route: WarpRouteConfig) -> bool:
    return True


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class DeploymentOrchestrator:
    """Drives one warp route deployment through the ``hyperlane`` CLI.

    Each run owns its configuration values; the runner and process manager
    may be shared between sequential runs but not between concurrent ones.
    """

    def __init__(
        self,
        runner: CommandRunner,
        settings: DeploymentSettings,
        *,
        deploy_policy: DeployPolicy = always_deploy,
        commands: HyperlaneCommands | None = None,
    ) -> None:
        self._runner = runner
        self._settings = settings
        self._deploy_policy = deploy_policy
        self._commands = commands or HyperlaneCommands(
            settings.hyperlane_bin, settings.core_config_template
        )
        self._logger = get_logger(__name__)
        for chain in settings.target_chains:
            HyperlaneCommands._check_chain(chain)

    @classmethod
    def from_settings(
        cls,
        settings: DeploymentSettings,
        *,
        manager: ProcessManager | None = None,
        deploy_policy: DeployPolicy = always_deploy,
    ) -> "DeploymentOrchestrator":
        """Create an orchestrator backed by real subprocesses unless told otherwise."""
        if manager is None:
            manager = AsyncioProcessManager(
                env=settings.child_environment(),
                cwd=settings.working_dir,
                timeout_seconds=settings.command_timeout_seconds,
            )
        return cls(CommandRunner(manager), settings, deploy_policy=deploy_policy)

    async def run(
        self,
        warp_route_config: bytes | str,
        plan: InfraPlan | None = None,
        *,
        advanced: bool = True,
        fmt: ConfigFormat = ConfigFormat.YAML,
    ) -> DeploymentReport:
        """Execute every stage and return the report of a successful run.

        Raises:
            ConfigurationInvalid: The warp route document was rejected.
            DeploymentStepFailed: An external command failed.
        """
        plan = plan if plan is not None else FreshInfra()
        report = DeploymentReport(run_id=uuid.uuid4().hex[:12])

        with log_context(run_id=report.run_id), Timer() as timer:
            try:
                await self._setup_infra(report, plan, advanced)
                route = self._init_route(report, warp_route_config, fmt)
                await self._deploy_route(report, route)
                for chain in self._settings.target_chains:
                    await self._reconcile_chain(report, chain)
            except DeploymentError as exc:
                report.failed_stage = report.stage
                report.stage = DeploymentStage.FAILED
                report.error = str(exc)
                exc.report = report
                record_deployment("failed", timer.elapsed_so_far(), exc.stage.value)
                self._logger.error("Deployment failed: %s", exc)
                raise

            report.stage = DeploymentStage.DONE
            self._logger.info("Deployment finished after %d steps", len(report.steps))
        record_deployment("success", timer.elapsed, DeploymentStage.DONE.value)
        return report

    async def _execute(self, report: DeploymentReport, batch: list[Command]) -> CommandOutput:
        try:
            outputs = await self._runner.run_batch(batch)
        except CommandFailedError as exc:
            raise DeploymentStepFailed(exc.name, exc.cause, stage=report.stage) from exc
        for name, command in batch:
            report.steps.append(StepRecord(report.stage, name, command, outputs[name]))
        return outputs

    async def _setup_infra(
        self, report: DeploymentReport, plan: InfraPlan, advanced: bool
    ) -> None:
        report.stage = DeploymentStage.INFRA_SETUP
        with log_context(stage=report.stage.value):
            if isinstance(plan, ReuseInfra):
                report.reused_core_config = plan.core_config
                self._logger.info(
                    "Using existing core config owned by %s", plan.core_config.owner_address
                )
                self._logger.debug("Existing core config: %r", plan.core_config)
            else:
                self._logger.info("Setting up new core infrastructure")
            await self._execute(report, self._commands.infra_batch(plan, advanced))

    def _init_route(
        self, report: DeploymentReport, raw: bytes | str, fmt: ConfigFormat
    ) -> WarpRouteConfig:
        report.stage = DeploymentStage.ROUTE_INIT
        with log_context(stage=report.stage.value):
            try:
                route = WarpRouteConfig.parse(raw, fmt)
            except ConfigError as exc:
                raise ConfigurationInvalid("warp route", exc, stage=report.stage) from exc
            report.warp_route = route
            self._logger.info("Warp route covers chains: %s", ", ".join(route.chain_names()))
            return route

    async def _deploy_route(self, report: DeploymentReport, route: WarpRouteConfig) -> None:
        report.stage = DeploymentStage.ROUTE_DEPLOY_DECISION
        with log_context(stage=report.stage.value):
            if not self._deploy_policy(route):
                self._logger.info("Deploy policy declined; skipping warp deploy")
                return
            await self._execute(report, [self._commands.warp_deploy()])
            report.deployed = True

    async def _reconcile_chain(self, report: DeploymentReport, chain: str) -> None:
        report.stage = DeploymentStage.PER_CHAIN_RECONCILE
        with log_context(stage=report.stage.value, chain=chain):
            read = self._commands.core_read(chain)
            outputs = await self._execute(report, [read])
            apply = self._commands.core_apply(chain, outputs[read[0]])
            await self._execute(report, [apply])
            report.reconciled_chains.append(chain)


__all__ = [
    "ConfigurationInvalid",
    "DeployPolicy",
    "DeploymentError",
    "DeploymentOrchestrator",
    "DeploymentReport",
    "DeploymentStage",
    "DeploymentStepFailed",
    "FreshInfra",
    "HyperlaneCommands",
    "InfraPlan",
    "ReuseInfra",
    "StepRecord",
    "always_deploy",
    "plan_infra",
]
