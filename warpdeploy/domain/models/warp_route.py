"""Warp route configuration: one :class:`ChainConfig` per participating chain."""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, RootModel, StrictBool, field_validator

from .base import Address, WireDocument


class TokenType(str, Enum):
    """Token flavours a warp route can bridge, keyed by their wire tag."""

    SYNTHETIC = "synthetic"
    FAST_SYNTHETIC = "fastSynthetic"
    SYNTHETIC_URI = "syntheticUri"
    COLLATERAL = "collateral"
    COLLATERAL_VAULT = "collateralVault"
    XERC20 = "xErc20"
    XERC20_LOCKBOX = "xErc20Lockbox"
    COLLATERAL_FIAT = "collateralFiat"
    FAST_COLLATERAL = "fastCollateral"
    COLLATERAL_URI = "collateralUri"
    NATIVE = "native"
    NATIVE_SCALED = "nativeScaled"

    @property
    def is_collateral(self) -> bool:
        """True for token types that wrap an existing token contract."""
        return self in _COLLATERAL_TYPES


_COLLATERAL_TYPES = frozenset(
    {
        TokenType.COLLATERAL,
        TokenType.COLLATERAL_VAULT,
        TokenType.XERC20,
        TokenType.XERC20_LOCKBOX,
        TokenType.COLLATERAL_FIAT,
        TokenType.FAST_COLLATERAL,
        TokenType.COLLATERAL_URI,
    }
)


class InterchainSecurityModule(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    relayer_address: Address = Field(alias="relayer")
    ism_type: str = Field(alias="type")


class ChainConfig(BaseModel):
    """One chain's participation in a warp route.

    ``token`` names the wrapped token contract for collateral-style routes.
    It is kept only when the source document carried it and is omitted from
    the output otherwise.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    interchain_security_module: InterchainSecurityModule = Field(
        alias="interchainSecurityModule"
    )
    is_nft: StrictBool = Field(alias="isNft")
    mailbox_address: Address = Field(alias="mailbox")
    interchain_gas_paymaster_address: Address | None = Field(
        default=None, alias="interchainGasPaymaster"
    )
    owner_address: Address = Field(alias="owner")
    token_type: TokenType = Field(alias="type")
    token: Address | None = None


class WarpRouteConfig(WireDocument, RootModel[dict[str, ChainConfig]]):
    """Full multi-chain route definition keyed by chain name."""

    @field_validator("root")
    @classmethod
    def _has_chains(cls, value: dict[str, ChainConfig]) -> dict[str, ChainConfig]:
        if not value:
            raise ValueError("warp route must define at least one chain")
        blank = [name for name in value if not name.strip()]
        if blank:
            raise ValueError("chain names must not be blank")
        return value

    @property
    def chains(self) -> dict[str, ChainConfig]:
        return self.root

    def chain_names(self) -> list[str]:
        return list(self.root)

    def get(self, chain: str) -> ChainConfig | None:
        return self.root.get(chain)

    def update_chain_config(self, chain: str, config: ChainConfig) -> None:
        """Insert or wholly replace the entry for ``chain``."""
        self.root[chain] = config

    def __contains__(self, chain: object) -> bool:
        return chain in self.root

    def __len__(self) -> int:
        return len(self.root)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)


__all__ = ["ChainConfig", "InterchainSecurityModule", "TokenType", "WarpRouteConfig"]
