"""Job entrypoint invoked by the host runtime for each deployment request.

The host hands over raw document bytes and expects a numeric status. Errors
are raised as :class:`~warpdeploy.services.deployment.DeploymentError`
subclasses so one bad job cannot take the hosting process down.
"""

from __future__ import annotations

from warpdeploy.app.config import DeploymentSettings
from warpdeploy.infrastructure.observability import get_logger, log_context
from warpdeploy.infrastructure.process import ProcessManager
from warpdeploy.services.deployment import (
    DeployPolicy,
    DeploymentOrchestrator,
    always_deploy,
    plan_infra,
)

logger = get_logger(__name__)


async def operate_a_warp_route(
    config: bytes,
    advanced: bool,
    existing_core_config: bytes | None,
    *,
    settings: DeploymentSettings,
    manager: ProcessManager | None = None,
    deploy_policy: DeployPolicy = always_deploy,
) -> int:
    """Deploy a warp route, reusing core infrastructure when given its config.

    Args:
        config: Warp route document as raw YAML (or JSON) bytes.
        advanced: Run ``core init`` in advanced mode instead of the
            trusted-relayer default.
        existing_core_config: Core config bytes of an existing deployment.
            ``None`` or empty bytes request fresh infrastructure.
        settings: Deployment settings carrying the deployer credential.
        manager: Process manager override, mainly for tests.

    Returns:
        ``0`` once every stage completed.
    """
    with log_context(job="operate_a_warp_route"):
        plan = plan_infra(existing_core_config)
        orchestrator = DeploymentOrchestrator.from_settings(
            settings, manager=manager, deploy_policy=deploy_policy
        )
        report = await orchestrator.run(config, plan, advanced=advanced)
        logger.info("Job finished with %d steps", len(report.steps))
        return report.status_code


__all__ = ["operate_a_warp_route"]
