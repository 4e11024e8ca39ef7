"""Validation CLI: check config documents without running anything."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from warpdeploy.domain.errors import ConfigError
from warpdeploy.domain.models import ConfigFormat, CoreConfig, WarpRouteConfig, WireDocument

_FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice([f.value for f in ConfigFormat], case_sensitive=False),
    default=ConfigFormat.YAML.value,
    show_default=True,
    help="Encoding used to print the normalised document.",
)
_PATH_ARGUMENT = click.argument(
    "path",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
)


def _check(ctx: click.Context, model: type[WireDocument], path: Path, output_format: str) -> WireDocument:
    console = Console()
    try:
        document = model.from_file(path)
    except ConfigError as exc:
        console.print(f"[red]{escape(f'{path}: {exc}')}[/red]", soft_wrap=True)
        ctx.exit(1)
    click.echo(document.serialize(output_format.lower()).decode("utf-8"), nl=False)
    return document


@click.group(name="validate")
def validate() -> None:
    """Parse a config document and print it normalised."""


@validate.command(name="core")
@_PATH_ARGUMENT
@_FORMAT_OPTION
@click.pass_context
def validate_core(ctx: click.Context, path: Path, output_format: str) -> None:
    """Validate a core infrastructure config."""
    _check(ctx, CoreConfig, path, output_format)


@validate.command(name="warp")
@_PATH_ARGUMENT
@_FORMAT_OPTION
@click.pass_context
def validate_warp(ctx: click.Context, path: Path, output_format: str) -> None:
    """Validate a warp route config."""
    _check(ctx, WarpRouteConfig, path, output_format)
