"""Application wiring: settings and the job entrypoint's configuration."""

from .config import (
    CREDENTIAL_ENV_VAR,
    DEFAULT_TARGET_CHAINS,
    DeploymentSettings,
    MissingCredentialError,
    load_config,
    load_settings,
)

__all__ = [
    "CREDENTIAL_ENV_VAR",
    "DEFAULT_TARGET_CHAINS",
    "DeploymentSettings",
    "MissingCredentialError",
    "load_config",
    "load_settings",
]
