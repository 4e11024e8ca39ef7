"""Configuration document models."""

from .base import Address, ConfigFormat, DecimalString, WireDocument
from .core import CoreConfig, DefaultHook, DefaultIsm, RequiredHook
from .warp_route import ChainConfig, InterchainSecurityModule, TokenType, WarpRouteConfig

__all__ = [
    "Address",
    "ChainConfig",
    "ConfigFormat",
    "CoreConfig",
    "DecimalString",
    "DefaultHook",
    "DefaultIsm",
    "InterchainSecurityModule",
    "RequiredHook",
    "TokenType",
    "WarpRouteConfig",
    "WireDocument",
]
