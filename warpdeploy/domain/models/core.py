"""Core infrastructure configuration (hooks, ISM and owner for one chain)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import Address, DecimalString, WireDocument, parse_address

_MODEL_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


class DefaultHook(BaseModel):
    model_config = _MODEL_CONFIG

    address: Address
    hook_type: str = Field(alias="type")


class DefaultIsm(BaseModel):
    model_config = _MODEL_CONFIG

    address: Address
    relayer_address: Address = Field(alias="relayer")
    ism_type: str = Field(alias="type")


class RequiredHook(BaseModel):
    """Protocol-fee hook every dispatched message must pass through.

    Fees are wei amounts kept as decimal strings so values above 2**53 survive
    a JSON round trip untouched.
    """

    model_config = _MODEL_CONFIG

    address: Address
    beneficiary_address: Address = Field(alias="beneficiary")
    max_protocol_fee: DecimalString = Field(alias="maxProtocolFee")
    owner_address: Address = Field(alias="owner")
    protocol_fee: DecimalString = Field(alias="protocolFee")
    hook_type: str = Field(alias="type")

    @model_validator(mode="after")
    def _fee_within_maximum(self) -> "RequiredHook":
        if int(self.protocol_fee) > int(self.max_protocol_fee):
            raise ValueError(
                f"protocolFee {self.protocol_fee} exceeds maxProtocolFee {self.max_protocol_fee}"
            )
        return self


class CoreConfig(WireDocument, BaseModel):
    """Shared messaging-infrastructure configuration for one chain.

    This is the document ``hyperlane core init`` writes and ``hyperlane core
    read`` prints.
    """

    model_config = _MODEL_CONFIG

    default_hook: DefaultHook = Field(alias="defaultHook")
    default_ism: DefaultIsm = Field(alias="defaultIsm")
    owner_address: Address = Field(alias="owner")
    required_hook: RequiredHook = Field(alias="requiredHook")

    def update_owner(self, new_owner: str) -> None:
        """Replace the owner address in place.

        Raises:
            ValueError: If ``new_owner`` is not a 20-byte hex address. The
                config is left unchanged.
        """
        self.owner_address = parse_address(new_owner)


__all__ = ["CoreConfig", "DefaultHook", "DefaultIsm", "RequiredHook"]
