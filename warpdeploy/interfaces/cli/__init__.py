"""CLI interface facades for Warpdeploy.

This package is the home for all Click commands; ``warpdeploy`` on the
command line and ``python -m warpdeploy.interfaces.cli`` both run :data:`cli`.
"""

from .__main__ import cli
from .deploy import deploy
from .validate import validate

__all__ = ["cli", "deploy", "validate"]
