from __future__ import annotations


class ConfigTransferError(RuntimeError):
    """Base error for file-level import/export failures; aborts the whole request."""


class UnsupportedFormatError(ConfigTransferError):
    """Raised when the declared extension / content type is not xlsx, json or yaml."""


class MalformedInputError(ConfigTransferError):
    """Raised when a file claims a supported format but cannot be decoded."""


class RowLevelError(ValueError):
    """
    A failure isolated to a single row. It is recorded in that entity's
    `errors` list and never aborts sibling rows.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class RowValidationError(RowLevelError):
    """Missing required field, invalid enum value or out-of-range number."""


class UnresolvedReferenceError(RowLevelError):
    """A mapping row references a provider/model name that does not exist."""

    def __init__(self, field: str, missing_key: str) -> None:
        super().__init__(field, f"{field} '{missing_key}' 不存在")
        self.missing_key = missing_key


__all__ = [
    "ConfigTransferError",
    "MalformedInputError",
    "RowLevelError",
    "RowValidationError",
    "UnresolvedReferenceError",
    "UnsupportedFormatError",
]
