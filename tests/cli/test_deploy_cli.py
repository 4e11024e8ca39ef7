from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.domain.test_core_config import CORE_YAML
from tests.domain.test_warp_route_config import WARP_YAML
from tests.stubs import ScriptedManager
from warpdeploy.infrastructure.observability import reset_metrics
from warpdeploy.interfaces.cli import cli

cli_deploy_module = importlib.import_module("warpdeploy.interfaces.cli.deploy")


@dataclass
class StubProcesses:
    created: list[ScriptedManager] = field(default_factory=list)
    fail: set[str] = field(default_factory=set)

    def __call__(self) -> ScriptedManager:
        manager = ScriptedManager(
            outputs={"run core read --chain holesky": "ABC123"}, fail=self.fail
        )
        self.created.append(manager)
        return manager


@pytest.fixture
def processes(monkeypatch: pytest.MonkeyPatch) -> StubProcesses:
    reset_metrics()
    stub = StubProcesses()
    monkeypatch.setattr(cli_deploy_module, "PROCESS_MANAGER_FACTORY", stub)
    monkeypatch.setattr(cli_deploy_module, "configure_logging", lambda **_: None)
    monkeypatch.setenv("HYP_KEY", "0xkey")
    monkeypatch.setenv("COLUMNS", "200")
    return stub


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_deploy_runs_all_stages(tmp_path: Path, processes: StubProcesses) -> None:
    config = _write(tmp_path, "route.yaml", WARP_YAML)

    result = CliRunner().invoke(cli, ["deploy", "--config", config, "--chain", "holesky"])

    assert result.exit_code == 0, result.output
    assert "Warp route deployed" in result.output
    assert "reconciled: holesky" in result.output
    assert processes.created[0].commands[-1] == "hyperlane core apply --chain holesky --input 'ABC123'"


def test_deploy_with_existing_core_config(tmp_path: Path, processes: StubProcesses) -> None:
    config = _write(tmp_path, "route.yaml", WARP_YAML)
    core = _write(tmp_path, "core.yaml", CORE_YAML)

    result = CliRunner().invoke(
        cli,
        ["deploy", "--config", config, "--existing-core-config", core, "--basic", "--chain", "holesky"],
    )

    assert result.exit_code == 0, result.output
    assert processes.created[0].commands[1] == "hyperlane core init"


def test_deploy_requires_credential(
    tmp_path: Path, processes: StubProcesses, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("HYP_KEY")
    config = _write(tmp_path, "route.yaml", WARP_YAML)

    result = CliRunner().invoke(cli, ["deploy", "--config", config])

    assert result.exit_code == 1
    assert "HYP_KEY" in result.output
    assert processes.created == []


def test_deploy_reports_invalid_route(tmp_path: Path, processes: StubProcesses) -> None:
    config = _write(tmp_path, "route.yaml", WARP_YAML.replace('"synthetic"', '"bogus"'))

    result = CliRunner().invoke(cli, ["deploy", "--config", config])

    assert result.exit_code == 1
    assert "Invalid warp route config" in result.output


def test_deploy_reports_failing_step(tmp_path: Path, processes: StubProcesses) -> None:
    processes.fail.add("run warp deploy")
    config = _write(tmp_path, "route.yaml", WARP_YAML)

    result = CliRunner().invoke(cli, ["deploy", "--config", config])

    assert result.exit_code == 1
    assert "Deployment failed at step 'run warp deploy'" in result.output
    assert "hyperlane core read --chain holesky" not in processes.created[0].commands


def test_deploy_prints_metrics_summary(tmp_path: Path, processes: StubProcesses) -> None:
    config = _write(tmp_path, "route.yaml", WARP_YAML)

    result = CliRunner().invoke(
        cli, ["deploy", "--config", config, "--chain", "holesky", "--metrics"]
    )

    assert result.exit_code == 0, result.output
    assert "Metrics" in result.output
    assert "command_runs_total" in result.output
    assert "deployments_total" in result.output


def test_deploy_writes_metrics_file_even_when_a_step_fails(
    tmp_path: Path, processes: StubProcesses
) -> None:
    processes.fail.add("run warp deploy")
    config = _write(tmp_path, "route.yaml", WARP_YAML)
    metrics_path = tmp_path / "warpdeploy.prom"

    result = CliRunner().invoke(
        cli, ["deploy", "--config", config, "--metrics-file", str(metrics_path)]
    )

    assert result.exit_code == 1
    text = metrics_path.read_text(encoding="utf-8")
    assert 'command_runs_total{command="run warp deploy",status="failed"} 1.0' in text
    assert 'deployments_total{stage="route_deploy_decision",status="failed"} 1.0' in text
    assert "# TYPE command_duration_seconds histogram" in text
    assert text.endswith("\n")
