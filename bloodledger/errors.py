"""
Typed errors raised by the ledger state layer.

Every error carries a stable ``code`` so the dispatcher can turn it into a
structured failure response without inspecting the message text.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all blood-bag ledger failures."""

    code = "LEDGER_ERROR"


class InvalidArgument(LedgerError):
    """Wrong argument count or an empty/ill-formed required field."""

    code = "INVALID_ARGUMENT"


class AlreadyExists(LedgerError):
    code = "ALREADY_EXISTS"


class NotFound(LedgerError):
    code = "NOT_FOUND"


class DecodeError(LedgerError):
    """Stored bytes do not parse as a blood-bag record."""

    code = "DECODE_ERROR"

    def __init__(self, message: str, key: Optional[str] = None):
        if key is not None:
            message = f"Failed to decode JSON of: {key} ({message})"
        super().__init__(message)
        self.key = key


class BagIndexError(LedgerError):
    """The ``type~id`` composite key could not be constructed."""

    code = "INDEX_ERROR"
