"""Error taxonomy shared by the stores, the service and the stopwatch."""
from __future__ import annotations


class ChugError(Exception):
    """Base class for all core errors."""


class ValidationError(ChugError):
    """Input rejected before anything was written."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(ChugError):
    """A direct lookup did not resolve."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class StorageUnavailable(ChugError):
    """Persistence or blob backend cannot be reached. Never retried here."""


class InvalidTransition(ChugError):
    """Stopwatch operation called from a state that does not allow it."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(f"cannot {operation} while {state}")
        self.operation = operation
        self.state = state
