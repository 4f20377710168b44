"""Exceptions raised by the layout engine and its collaborators."""

from typing import Optional


class SlotCraftError(Exception):
    """Base class for SlotCraft errors."""
    pass


class ValidationError(SlotCraftError):
    """A slot, cell or page failed validation.

    Attributes:
        field: Name of the offending field
    """

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class DecodeError(SlotCraftError):
    """Media could not be fetched or decoded."""

    def __init__(self, source: str, message: str):
        super().__init__(f"Failed to decode {source!r}: {message}")
        self.source = source
        self.message = message


class PersistenceError(SlotCraftError):
    """The preset or asset store failed or rejected a payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
