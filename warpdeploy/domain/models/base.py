"""Shared building blocks for the configuration documents.

Both document kinds travel as JSON or YAML with camelCase keys. The helpers
here turn raw text or bytes into validated pydantic models and back, and map
every decoding failure onto the :mod:`warpdeploy.domain.errors` taxonomy so
callers never see a bare ``ValidationError`` or ``YAMLError``.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, TypeVar

import yaml
from pydantic import BeforeValidator, ValidationError

from warpdeploy.domain.errors import DeserializationError, EncodingError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_DECIMAL_RE = re.compile(r"^[0-9]+$")
_MAX_ADDRESS = 2**160

DocumentT = TypeVar("DocumentT", bound="WireDocument")


class ConfigFormat(str, Enum):
    """Wire encodings accepted for configuration documents."""

    JSON = "json"
    YAML = "yaml"

    @classmethod
    def from_path(cls, path: str | Path) -> "ConfigFormat":
        """Guess the encoding from a file suffix, defaulting to YAML."""
        if Path(path).suffix.lower() == ".json":
            return cls.JSON
        return cls.YAML


def parse_address(value: Any) -> str:
    """Validate a 20-byte chain address and return it in lower-case hex.

    Checksummed and raw hex strings are both accepted. YAML reads unquoted
    ``0x...`` scalars as integers, so integers that fit in 20 bytes are
    rendered back into hex instead of being rejected.
    """
    if isinstance(value, bool):
        raise ValueError("address must be a 0x-prefixed hex string")
    if isinstance(value, int):
        if not 0 <= value < _MAX_ADDRESS:
            raise ValueError("address does not fit in 20 bytes")
        return f"0x{value:040x}"
    if not isinstance(value, str):
        raise ValueError("address must be a 0x-prefixed hex string")
    if not _ADDRESS_RE.fullmatch(value):
        raise ValueError(f"invalid address {value!r}: expected 0x followed by 40 hex digits")
    return value.lower()


def parse_decimal_string(value: Any) -> str:
    """Validate a non-negative base-10 integer carried as a string.

    Only strings are accepted. YAML 1.1 reads unquoted scalars such as
    ``010``, ``0x10`` or ``1_000`` as integers whose decimal form differs
    from the text that was written, so fees must be quoted.
    """
    if not isinstance(value, str):
        raise ValueError(
            f"invalid fee {value!r}: expected a quoted base-10 integer string"
        )
    if not _DECIMAL_RE.fullmatch(value):
        raise ValueError(f"invalid fee {value!r}: expected a non-negative base-10 integer")
    return value


Address = Annotated[str, BeforeValidator(parse_address)]
DecimalString = Annotated[str, BeforeValidator(parse_decimal_string)]


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into one line of ``loc: message`` pairs."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class WireDocument:
    """Mixin adding JSON/YAML parsing and serialisation to pydantic models.

    Subclasses must also derive from ``BaseModel`` or ``RootModel``. Output
    is keyed by the camelCase aliases and optional fields that are unset are
    omitted rather than written as ``null``.
    """

    @classmethod
    def _validate_payload(cls: type[DocumentT], payload: Any, fmt: ConfigFormat) -> DocumentT:
        try:
            return cls.model_validate(payload)  # type: ignore[attr-defined]
        except ValidationError as exc:
            raise DeserializationError(describe_validation_error(exc), fmt=fmt.value) from exc

    @classmethod
    def from_json(cls: type[DocumentT], text: str) -> DocumentT:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeserializationError(str(exc), fmt=ConfigFormat.JSON.value) from exc
        return cls._validate_payload(payload, ConfigFormat.JSON)

    @classmethod
    def from_yaml(cls: type[DocumentT], text: str) -> DocumentT:
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise DeserializationError(str(exc), fmt=ConfigFormat.YAML.value) from exc
        return cls._validate_payload(payload, ConfigFormat.YAML)

    @classmethod
    def from_bytes(
        cls: type[DocumentT], data: bytes, fmt: ConfigFormat = ConfigFormat.YAML
    ) -> DocumentT:
        """Decode UTF-8 bytes and parse them in the given format.

        YAML is the default because job payloads arrive as raw YAML bytes;
        JSON documents are valid YAML as well.
        """
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EncodingError() from exc
        return cls.parse(text, fmt)

    @classmethod
    def parse(
        cls: type[DocumentT],
        data: str | bytes,
        fmt: ConfigFormat | str = ConfigFormat.YAML,
    ) -> DocumentT:
        fmt = ConfigFormat(fmt)
        if isinstance(data, (bytes, bytearray, memoryview)):
            return cls.from_bytes(bytes(data), fmt)
        if fmt is ConfigFormat.JSON:
            return cls.from_json(data)
        return cls.from_yaml(data)

    @classmethod
    def from_file(cls: type[DocumentT], path: str | Path) -> DocumentT:
        """Read a document from disk, choosing the format by suffix."""
        return cls.from_bytes(Path(path).read_bytes(), ConfigFormat.from_path(path))

    def to_wire(self) -> Any:
        return self.model_dump(  # type: ignore[attr-defined]
            mode="json", by_alias=True, exclude_none=True
        )

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_wire(), indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_wire(), sort_keys=False)

    def serialize(self, fmt: ConfigFormat | str = ConfigFormat.YAML) -> bytes:
        if ConfigFormat(fmt) is ConfigFormat.JSON:
            return self.to_json().encode("utf-8")
        return self.to_yaml().encode("utf-8")


__all__ = [
    "Address",
    "ConfigFormat",
    "DecimalString",
    "WireDocument",
    "describe_validation_error",
    "parse_address",
    "parse_decimal_string",
]
