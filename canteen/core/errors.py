"""Error taxonomy shared by services and page handlers."""

from __future__ import annotations


class CanteenError(Exception):
    """Base class for errors raised by this application."""


class ValidationError(CanteenError):
    """A required input is missing or invalid; the action never reaches storage."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class AuthError(CanteenError):
    """Identity provider rejected an operation.

    ``reason`` keeps the provider-defined code for logs; ``message`` is the
    only text shown to users.
    """

    message = "Could not authenticate. Please check your details and try again."

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StorageError(CanteenError):
    """Document storage read or write failed."""

    def __init__(self, operation: str, collection: str, detail: str = "") -> None:
        text = f"{operation} on '{collection}' failed"
        if detail:
            text = f"{text}: {detail}"
        super().__init__(text)
        self.operation = operation
        self.collection = collection


class DecodingError(StorageError):
    """A stored record does not match the expected typed shape."""

    def __init__(self, collection: str, record_id: str | None, detail: str = "") -> None:
        super().__init__("decode", collection, detail)
        self.record_id = record_id


class PermissionDenied(CanteenError):
    """The acting profile lacks the capability required by a mutation."""

    def __init__(self, capability: str) -> None:
        super().__init__(f"Missing capability: {capability}")
        self.capability = capability
