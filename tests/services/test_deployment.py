from __future__ import annotations

import asyncio

import pytest

from tests.domain.test_core_config import CORE_YAML
from tests.domain.test_warp_route_config import WARP_JSON, WARP_YAML
from tests.stubs import ScriptedManager
from warpdeploy.app.config import DeploymentSettings
from warpdeploy.domain.models import ConfigFormat
from warpdeploy.services.deployment import (
    ConfigurationInvalid,
    DeploymentOrchestrator,
    DeploymentStage,
    DeploymentStepFailed,
    FreshInfra,
    HyperlaneCommands,
    ReuseInfra,
    plan_infra,
)
from warpdeploy.services.jobs import operate_a_warp_route
from warpdeploy.services.runner import CommandRunner

SETTINGS = DeploymentSettings(deployer_key="0xkey")

READ_OUTPUTS = {
    "run core read --chain holesky": "ABC123",
    "run core read --chain tangletestnet": "owner: 0x01",
}

EXPECTED_COMMANDS = [
    "hyperlane registry init",
    "hyperlane core init --advanced",
    "hyperlane core deploy",
    "hyperlane warp deploy",
    "hyperlane core read --chain holesky",
    "hyperlane core apply --chain holesky --input 'ABC123'",
    "hyperlane core read --chain tangletestnet",
    "hyperlane core apply --chain tangletestnet --input 'owner: 0x01'",
]


def _orchestrator(manager: ScriptedManager, settings: DeploymentSettings = SETTINGS, **kwargs):
    return DeploymentOrchestrator(CommandRunner(manager), settings, **kwargs)


def test_fresh_run_executes_every_stage_in_order() -> None:
    manager = ScriptedManager(outputs=READ_OUTPUTS)

    report = asyncio.run(_orchestrator(manager).run(WARP_YAML.encode("utf-8"), FreshInfra()))

    assert manager.commands == EXPECTED_COMMANDS
    assert report.succeeded
    assert report.stage is DeploymentStage.DONE
    assert report.status_code == 0
    assert report.deployed
    assert report.reconciled_chains == ["holesky", "tangletestnet"]
    assert report.warp_route is not None and "chain1" in report.warp_route
    assert report.outputs["run core read --chain holesky"] == "ABC123"


def test_apply_embeds_read_output_verbatim() -> None:
    payload = "defaultHook:\n  type: merkleTreeHook\n"
    manager = ScriptedManager(outputs={"run core read --chain holesky": payload})
    settings = DeploymentSettings(deployer_key="0xkey", target_chains=("holesky",))

    asyncio.run(_orchestrator(manager, settings).run(WARP_JSON, fmt=ConfigFormat.JSON))

    apply_command = manager.commands[-1]
    assert apply_command == f"hyperlane core apply --chain holesky --input '{payload}'"
    assert manager.names[-2:] == ["run core read --chain holesky", "run core apply --chain holesky"]


def test_reuse_plan_still_runs_infrastructure_batch() -> None:
    manager = ScriptedManager(outputs=READ_OUTPUTS)
    plan = plan_infra(CORE_YAML.encode("utf-8"))

    report = asyncio.run(_orchestrator(manager).run(WARP_YAML, plan))

    assert isinstance(plan, ReuseInfra)
    assert manager.commands[:3] == EXPECTED_COMMANDS[:3]
    assert report.reused_core_config == plan.core_config


def test_core_template_only_applies_to_fresh_infrastructure() -> None:
    commands = HyperlaneCommands("hyperlane", core_template="configs/core config.yaml")
    reuse = plan_infra(CORE_YAML.encode("utf-8"))

    _, fresh_command = commands.core_init(FreshInfra(), advanced=True)
    _, reuse_command = commands.core_init(reuse, advanced=True)

    assert fresh_command == "hyperlane core init --advanced --config 'configs/core config.yaml'"
    assert reuse_command == "hyperlane core init --advanced"


def test_basic_mode_omits_advanced_flag() -> None:
    manager = ScriptedManager()
    settings = DeploymentSettings(deployer_key="0xkey", target_chains=())

    asyncio.run(_orchestrator(manager, settings).run(WARP_YAML, advanced=False))

    assert manager.started[1] == ("run core init", "hyperlane core init")


def test_custom_binary_is_used_for_every_command() -> None:
    manager = ScriptedManager()
    settings = DeploymentSettings(deployer_key="0xkey", hyperlane_bin="/opt/hyp", target_chains=("holesky",))

    asyncio.run(_orchestrator(manager, settings).run(WARP_YAML))

    assert all(command.startswith("/opt/hyp ") for command in manager.commands)


def test_plan_infra_treats_missing_or_empty_bytes_as_fresh() -> None:
    assert isinstance(plan_infra(None), FreshInfra)
    assert isinstance(plan_infra(b""), FreshInfra)


def test_plan_infra_rejects_invalid_core_config() -> None:
    with pytest.raises(ConfigurationInvalid) as exc_info:
        plan_infra(b"defaultHook: {}\n")

    assert exc_info.value.stage is DeploymentStage.INFRA_SETUP
    assert exc_info.value.document == "core"


def test_invalid_warp_route_stops_before_warp_deploy() -> None:
    manager = ScriptedManager()

    with pytest.raises(ConfigurationInvalid) as exc_info:
        asyncio.run(_orchestrator(manager).run(WARP_YAML.replace('"synthetic"', '"bogus"')))

    assert exc_info.value.stage is DeploymentStage.ROUTE_INIT
    assert manager.commands == EXPECTED_COMMANDS[:3]
    report = exc_info.value.report
    assert report is not None
    assert report.stage is DeploymentStage.FAILED
    assert report.failed_stage is DeploymentStage.ROUTE_INIT


def test_infra_failure_aborts_the_run() -> None:
    manager = ScriptedManager(fail={"run core deploy"})

    with pytest.raises(DeploymentStepFailed) as exc_info:
        asyncio.run(_orchestrator(manager).run(WARP_YAML))

    assert exc_info.value.step == "run core deploy"
    assert exc_info.value.stage is DeploymentStage.INFRA_SETUP
    assert manager.commands == EXPECTED_COMMANDS[:3]
    assert exc_info.value.report is not None
    assert exc_info.value.report.steps == []


def test_failure_on_first_chain_skips_remaining_chains() -> None:
    manager = ScriptedManager(outputs=READ_OUTPUTS, fail={"run core apply --chain holesky"})

    with pytest.raises(DeploymentStepFailed) as exc_info:
        asyncio.run(_orchestrator(manager).run(WARP_YAML))

    assert exc_info.value.step == "run core apply --chain holesky"
    assert exc_info.value.stage is DeploymentStage.PER_CHAIN_RECONCILE
    assert not any("tangletestnet" in command for command in manager.commands)
    report = exc_info.value.report
    assert report is not None
    assert report.reconciled_chains == []
    assert report.status_code == 1


def test_failed_read_never_builds_apply_command() -> None:
    manager = ScriptedManager(fail={"run core read --chain holesky"})

    with pytest.raises(DeploymentStepFailed):
        asyncio.run(_orchestrator(manager).run(WARP_YAML))

    assert manager.names[-1] == "run core read --chain holesky"


def test_deploy_policy_can_skip_warp_deploy() -> None:
    manager = ScriptedManager(outputs=READ_OUTPUTS)
    seen = []

    def policy(route) -> bool:
        seen.append(route.chain_names())
        return False

    report = asyncio.run(_orchestrator(manager, deploy_policy=policy).run(WARP_YAML))

    assert seen == [["chain1"]]
    assert "hyperlane warp deploy" not in manager.commands
    assert not report.deployed
    assert report.reconciled_chains == ["holesky", "tangletestnet"]


def test_invalid_chain_names_are_rejected_up_front() -> None:
    settings = DeploymentSettings(deployer_key="0xkey", target_chains=("holesky; rm -rf /",))

    with pytest.raises(ValueError, match="Invalid chain name"):
        _orchestrator(ScriptedManager(), settings)


def test_job_entrypoint_returns_zero_on_success() -> None:
    manager = ScriptedManager(outputs=READ_OUTPUTS)

    status = asyncio.run(
        operate_a_warp_route(
            WARP_YAML.encode("utf-8"), True, None, settings=SETTINGS, manager=manager
        )
    )

    assert status == 0
    assert manager.commands == EXPECTED_COMMANDS


def test_job_entrypoint_raises_instead_of_exiting_on_bad_core_config() -> None:
    manager = ScriptedManager()

    with pytest.raises(ConfigurationInvalid):
        asyncio.run(
            operate_a_warp_route(
                WARP_YAML.encode("utf-8"),
                True,
                bytes([0x00, 0x9F, 0x92, 0x96]),
                settings=SETTINGS,
                manager=manager,
            )
        )

    assert manager.started == []
