"""
Warpdeploy package initializer.

This package orchestrates Hyperlane warp route deployments by driving the
``hyperlane`` command-line tool and validating the configuration documents
that parameterise it.

The package exposes a ``__version__`` attribute indicating the installed
version of Warpdeploy. The version is read from pyproject.toml via
importlib.metadata.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("warpdeploy")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
