"""Domain layer for Warpdeploy.

Holds the configuration documents exchanged with the ``hyperlane`` CLI and
the errors raised while decoding them. Nothing in this package spawns
processes or touches the environment.
"""

from .errors import ConfigError, DeserializationError, EncodingError
from .models import (
    Address,
    ChainConfig,
    ConfigFormat,
    CoreConfig,
    DefaultHook,
    DefaultIsm,
    InterchainSecurityModule,
    RequiredHook,
    TokenType,
    WarpRouteConfig,
)

__all__ = [
    "Address",
    "ChainConfig",
    "ConfigError",
    "ConfigFormat",
    "CoreConfig",
    "DefaultHook",
    "DefaultIsm",
    "DeserializationError",
    "EncodingError",
    "InterchainSecurityModule",
    "RequiredHook",
    "TokenType",
    "WarpRouteConfig",
]
