"""Configuration utilities for Warpdeploy.

Settings come from an optional JSON/YAML file merged with the process
environment. The deployer key is read here once and then passed explicitly
to whatever needs it.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict

import yaml

CREDENTIAL_ENV_VAR = "HYP_KEY"
DEFAULT_TARGET_CHAINS: tuple[str, ...] = ("holesky", "tangletestnet")


class MissingCredentialError(RuntimeError):
    """Raised when the deployer credential is not configured."""


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    Args:
        path: Path to the configuration file. ``.json`` files are parsed as
            JSON, everything else as YAML.

    Returns:
        A dictionary of configuration values.
    """
    with open(path, "r", encoding="utf-8") as f:
        if Path(path).suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


@dataclass(frozen=True)
class DeploymentSettings:
    """Settings for one orchestration run."""

    deployer_key: str = field(repr=False)
    hyperlane_bin: str = "hyperlane"
    target_chains: tuple[str, ...] = DEFAULT_TARGET_CHAINS
    command_timeout_seconds: float | None = None
    core_config_template: str | None = None
    working_dir: str | None = None

    def child_environment(self) -> dict[str, str]:
        """Environment overlay exported to every ``hyperlane`` process."""
        return {CREDENTIAL_ENV_VAR: self.deployer_key}

    def with_overrides(self, **overrides: Any) -> "DeploymentSettings":
        """Return a copy with every non-``None`` override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "target_chains" in values:
            values["target_chains"] = tuple(values["target_chains"])
        return replace(self, **values)


_FILE_KEYS = {
    "hyperlane_bin",
    "target_chains",
    "command_timeout_seconds",
    "core_config_template",
    "working_dir",
}


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DeploymentSettings:
    """Build :class:`DeploymentSettings` from a file and the environment.

    The credential is only ever taken from the environment, never from the
    settings file.

    Raises:
        MissingCredentialError: If ``HYP_KEY`` is unset or empty.
        ValueError: If the settings file has unknown keys or bad values.
    """
    env = os.environ if environ is None else environ
    deployer_key = env.get(CREDENTIAL_ENV_VAR, "").strip()
    if not deployer_key:
        raise MissingCredentialError(
            f"{CREDENTIAL_ENV_VAR} environment variable not set"
        )

    values: dict[str, Any] = {}
    if path is not None:
        raw = load_config(path)
        unknown = sorted(set(raw) - _FILE_KEYS)
        if unknown:
            raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")
        values.update(raw)

    chains = values.get("target_chains")
    if chains is not None:
        if isinstance(chains, str) or not all(isinstance(c, str) and c for c in chains):
            raise ValueError("target_chains must be a list of chain names")
        values["target_chains"] = tuple(chains)

    timeout = values.get("command_timeout_seconds")
    if timeout is not None:
        timeout = float(timeout)
        if timeout <= 0:
            raise ValueError("command_timeout_seconds must be positive")
        values["command_timeout_seconds"] = timeout

    return DeploymentSettings(deployer_key=deployer_key, **values)


__all__ = [
    "CREDENTIAL_ENV_VAR",
    "DEFAULT_TARGET_CHAINS",
    "DeploymentSettings",
    "MissingCredentialError",
    "load_config",
    "load_settings",
]
