"""Exception hierarchy shared across pipekit."""

from __future__ import annotations

from typing import Optional


class PipekitError(Exception):
    """Base class for all pipekit errors."""


class TransportError(PipekitError):
    """A request to an external service failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(PipekitError):
    """A referenced record no longer resolves."""


class UniqueConstraintError(PipekitError):
    """The record store rejected a write because of a uniqueness constraint."""

    def __init__(self, collection: str, fields: tuple[str, ...]) -> None:
        super().__init__(
            f"Record in '{collection}' violates unique constraint on {', '.join(fields)}"
        )
        self.collection = collection
        self.fields = fields


class CatalogNotReadyError(PipekitError):
    """A selection was attempted while the backing catalog was still loading."""


class InvalidStateError(PipekitError):
    """A state machine reached a combination that should be unreachable.

    This signals a programming error and is never recovered from.
    """


class StepNotFoundError(PipekitError, KeyError):
    """No step with the requested id exists in the builder."""
