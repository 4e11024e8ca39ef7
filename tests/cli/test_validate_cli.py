from __future__ import annotations

import json
from pathlib import Path

import yaml
from click.testing import CliRunner

from tests.domain.test_core_config import ADDRESS, CHECKSUMMED, CORE_YAML
from tests.domain.test_warp_route_config import WARP_YAML
from warpdeploy.interfaces.cli import cli


def test_validate_core_prints_normalised_yaml(tmp_path: Path) -> None:
    path = tmp_path / "core.yaml"
    path.write_text(CORE_YAML.replace(ADDRESS, CHECKSUMMED), encoding="utf-8")

    result = CliRunner().invoke(cli, ["validate", "core", str(path)])

    assert result.exit_code == 0, result.output
    document = yaml.safe_load(result.output)
    assert document["owner"] == ADDRESS
    assert document["requiredHook"]["maxProtocolFee"] == "100000000000000000"


def test_validate_warp_as_json(tmp_path: Path) -> None:
    path = tmp_path / "route.yaml"
    path.write_text(WARP_YAML, encoding="utf-8")

    result = CliRunner().invoke(cli, ["validate", "warp", str(path), "--format", "json"])

    assert result.exit_code == 0, result.output
    document = json.loads(result.output)
    assert document["chain1"]["type"] == "synthetic"


def test_validate_reports_invalid_document(tmp_path: Path) -> None:
    path = tmp_path / "route.json"
    path.write_text('{"chain1": {"isNft": false}}', encoding="utf-8")

    result = CliRunner().invoke(cli, ["validate", "warp", str(path)])

    assert result.exit_code == 1
    assert "deserialization error" in result.output
