"""Entry point for running the Warpdeploy CLI.

This module defines a top-level Click group that aggregates all subcommands
defined in the ``warpdeploy.interfaces.cli`` package. Executing
``python -m warpdeploy.interfaces.cli`` will invoke this group.
"""

import click

from .deploy import deploy
from .validate import validate


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """Warpdeploy command-line interface."""


cli.add_command(deploy)
cli.add_command(validate)


if __name__ == "__main__":
    cli()
