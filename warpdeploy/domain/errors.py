"""Errors raised while decoding configuration documents."""

from __future__ import annotations


class ConfigError(Exception):
    """Base class for configuration document errors."""


class EncodingError(ConfigError):
    """Raised when raw input bytes are not valid UTF-8 text."""

    def __init__(self, reason: str = "Invalid UTF-8") -> None:
        super().__init__(reason)
        self.reason = reason


class DeserializationError(ConfigError):
    """Raised when a JSON/YAML document does not match the expected schema."""

    def __init__(self, reason: str, *, fmt: str | None = None) -> None:
        label = f"{fmt.upper()} deserialization error" if fmt else "Deserialization error"
        super().__init__(f"{label}: {reason}")
        self.reason = reason
        self.fmt = fmt


__all__ = ["ConfigError", "DeserializationError", "EncodingError"]
