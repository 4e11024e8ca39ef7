from __future__ import annotations

import json
from pathlib import Path

import pytest

from warpdeploy.app.config import (
    DEFAULT_TARGET_CHAINS,
    DeploymentSettings,
    MissingCredentialError,
    load_config,
    load_settings,
)


def test_missing_credential_is_fatal() -> None:
    with pytest.raises(MissingCredentialError, match="HYP_KEY"):
        load_settings(environ={})


def test_blank_credential_is_fatal() -> None:
    with pytest.raises(MissingCredentialError):
        load_settings(environ={"HYP_KEY": "   "})


def test_defaults_come_from_environment_only() -> None:
    settings = load_settings(environ={"HYP_KEY": "0xkey"})

    assert settings.deployer_key == "0xkey"
    assert settings.hyperlane_bin == "hyperlane"
    assert settings.target_chains == DEFAULT_TARGET_CHAINS
    assert settings.command_timeout_seconds is None
    assert settings.child_environment() == {"HYP_KEY": "0xkey"}


def test_credential_is_not_in_repr() -> None:
    settings = DeploymentSettings(deployer_key="0xsecret")

    assert "0xsecret" not in repr(settings)


def test_settings_file_is_merged(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "hyperlane_bin: /usr/local/bin/hyperlane\n"
        "target_chains: [sepolia]\n"
        "command_timeout_seconds: 600\n",
        encoding="utf-8",
    )

    settings = load_settings(path, environ={"HYP_KEY": "0xkey"})

    assert settings.hyperlane_bin == "/usr/local/bin/hyperlane"
    assert settings.target_chains == ("sepolia",)
    assert settings.command_timeout_seconds == 600.0


def test_settings_file_cannot_carry_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"deployer_key": "0xleaked"}), encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown settings keys: deployer_key"):
        load_settings(path, environ={"HYP_KEY": "0xkey"})


@pytest.mark.parametrize(
    "content",
    ["target_chains: holesky\n", "command_timeout_seconds: 0\n"],
)
def test_settings_file_values_are_checked(tmp_path: Path, content: str) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(path, environ={"HYP_KEY": "0xkey"})


def test_load_config_reads_json_and_yaml(tmp_path: Path) -> None:
    json_path = tmp_path / "a.json"
    json_path.write_text('{"hyperlane_bin": "hyp"}', encoding="utf-8")
    yaml_path = tmp_path / "a.yml"
    yaml_path.write_text("hyperlane_bin: hyp\n", encoding="utf-8")
    empty_path = tmp_path / "empty.yaml"
    empty_path.write_text("", encoding="utf-8")

    assert load_config(json_path) == {"hyperlane_bin": "hyp"}
    assert load_config(yaml_path) == {"hyperlane_bin": "hyp"}
    assert load_config(empty_path) == {}


def test_with_overrides_ignores_none() -> None:
    settings = DeploymentSettings(deployer_key="0xkey")

    updated = settings.with_overrides(hyperlane_bin=None, target_chains=["holesky"])

    assert updated.hyperlane_bin == "hyperlane"
    assert updated.target_chains == ("holesky",)
