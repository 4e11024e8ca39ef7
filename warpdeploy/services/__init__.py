"""Service layer modules for Warpdeploy."""

from .deployment import (  # noqa: F401
    ConfigurationInvalid,
    DeploymentError,
    DeploymentOrchestrator,
    DeploymentReport,
    DeploymentStage,
    DeploymentStepFailed,
    FreshInfra,
    HyperlaneCommands,
    InfraPlan,
    ReuseInfra,
    plan_infra,
)
from .jobs import operate_a_warp_route  # noqa: F401
from .runner import CommandFailedError, CommandRunner, run_and_focus_multiple  # noqa: F401

__all__ = [
    "CommandFailedError",
    "CommandRunner",
    "ConfigurationInvalid",
    "DeploymentError",
    "DeploymentOrchestrator",
    "DeploymentReport",
    "DeploymentStage",
    "DeploymentStepFailed",
    "FreshInfra",
    "HyperlaneCommands",
    "InfraPlan",
    "ReuseInfra",
    "operate_a_warp_route",
    "plan_infra",
    "run_and_focus_multiple",
]
