"""Deployment CLI for Warpdeploy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from warpdeploy.app.config import MissingCredentialError, load_settings
from warpdeploy.domain.models import ConfigFormat
from warpdeploy.infrastructure.observability import (
    configure_logging,
    format_prometheus,
    get_metrics_summary,
)
from warpdeploy.infrastructure.process import ProcessManager, summarize_command
from warpdeploy.services.deployment import (
    ConfigurationInvalid,
    DeploymentError,
    DeploymentOrchestrator,
    DeploymentReport,
    DeploymentStepFailed,
    plan_infra,
)

# Replaced in tests to avoid spawning real processes.
PROCESS_MANAGER_FACTORY: Callable[[], ProcessManager] | None = None


def _print_steps(console: Console, report: DeploymentReport) -> None:
    if not report.steps:
        return
    table = Table(title=f"Run {report.run_id}")
    table.add_column("Stage")
    table.add_column("Step")
    table.add_column("Command")
    table.add_column("Output bytes", justify="right")
    for step in report.steps:
        table.add_row(
            step.stage.value,
            step.name,
            summarize_command(step.command, limit=60),
            str(len(step.output)),
        )
    console.print(table)


def _print_metrics(console: Console) -> None:
    summary = get_metrics_summary()
    table = Table(title="Metrics")
    table.add_column("Metric")
    table.add_column("Labels")
    table.add_column("Value", justify="right")
    for name, series in sorted(summary["counters"].items()):
        for labels, value in sorted(series.items()):
            table.add_row(name, labels, f"{value:g}")
    for name, series in sorted(summary["histograms"].items()):
        for labels, stats in sorted(series.items()):
            table.add_row(
                name,
                labels,
                f"n={stats['count']} avg={stats['avg']:.2f}s max={stats['max']:.2f}s",
            )
    console.print(table)


@click.command(name="deploy")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help="Warp route config (YAML or JSON) describing every chain of the route.",
)
@click.option(
    "--existing-core-config",
    "core_config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    default=None,
    help="Core config of an already deployed Hyperlane core to reuse.",
)
@click.option(
    "--advanced/--basic",
    default=True,
    show_default=True,
    help="Run `core init` in advanced mode (custom relayer) or the trusted-relayer default.",
)
@click.option(
    "--chain",
    "chains",
    multiple=True,
    help="Chain to reconcile after deploying. Repeat for several; overrides settings.",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    default=None,
    help="Optional YAML/JSON settings file.",
)
@click.option("--hyperlane-bin", default=None, help="Path or name of the hyperlane CLI.")
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Kill any single command that runs longer than this many seconds.",
)
@click.option(
    "--verbose/--no-verbose",
    default=False,
    show_default=True,
    help="Enable debug logging.",
)
@click.option(
    "--log-json/--no-log-json",
    default=False,
    show_default=True,
    help="Emit log records as JSON lines on stderr.",
)
@click.option(
    "--metrics/--no-metrics",
    "show_metrics",
    default=False,
    show_default=True,
    help="Print command and run metrics when the run ends.",
)
@click.option(
    "--metrics-file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write metrics in Prometheus text format to this file when the run ends.",
)
@click.pass_context
def deploy(
    ctx: click.Context,
    config_path: Path,
    core_config_path: Path | None,
    advanced: bool,
    chains: tuple[str, ...],
    settings_path: Path | None,
    hyperlane_bin: str | None,
    timeout_seconds: float | None,
    verbose: bool,
    log_json: bool,
    show_metrics: bool,
    metrics_file: Path | None,
) -> None:
    """Deploy a warp route and reconcile core config on each target chain.

    Requires the deployer key in the ``HYP_KEY`` environment variable.
    """
    console = Console()
    configure_logging(level=logging.DEBUG if verbose else logging.INFO, use_json=log_json)

    try:
        settings = load_settings(settings_path)
    except (MissingCredentialError, ValueError) as exc:
        console.print(f"[red]Cannot load settings: {escape(str(exc))}[/red]")
        ctx.exit(1)
    settings = settings.with_overrides(
        hyperlane_bin=hyperlane_bin,
        target_chains=chains or None,
        command_timeout_seconds=timeout_seconds,
    )

    existing = core_config_path.read_bytes() if core_config_path else None
    core_fmt = ConfigFormat.from_path(core_config_path) if core_config_path else ConfigFormat.YAML
    manager = PROCESS_MANAGER_FACTORY() if PROCESS_MANAGER_FACTORY else None

    exit_code = 0
    try:
        plan = plan_infra(existing, core_fmt)
        orchestrator = DeploymentOrchestrator.from_settings(settings, manager=manager)
        with console.status("Deploying warp route..."):
            report = asyncio.run(
                orchestrator.run(
                    config_path.read_bytes(),
                    plan,
                    advanced=advanced,
                    fmt=ConfigFormat.from_path(config_path),
                )
            )
    except ConfigurationInvalid as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        exit_code = 1
    except DeploymentStepFailed as exc:
        if exc.report is not None:
            _print_steps(console, exc.report)
        console.print(
            f"[red]Deployment failed at step {escape(repr(exc.step))}: {escape(str(exc.cause))}[/red]"
        )
        exit_code = 1
    except (DeploymentError, ValueError) as exc:
        console.print(f"[red]Deployment failed: {escape(str(exc))}[/red]")
        exit_code = 1
    else:
        _print_steps(console, report)
        console.print(
            f"[green]Warp route deployed[/green] across {len(report.warp_route or [])} chain(s); "
            f"reconciled: {', '.join(report.reconciled_chains) or 'none'}"
        )

    if show_metrics:
        _print_metrics(console)
    if metrics_file is not None:
        metrics_file.write_text(format_prometheus() + "\n", encoding="utf-8")
    if exit_code:
        ctx.exit(exit_code)
