"""Custom persistence exceptions."""

from __future__ import annotations


class RepositoryError(RuntimeError):
    """Base class for persistence layer errors."""


class NotFoundError(RepositoryError):
    """Raised when a requested entity is missing."""


class ExecutionNotFoundError(NotFoundError):
    """Raised when a result is reported for an unknown or expired execution."""

    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution {execution_id} not found")


class DuplicateKeyError(RepositoryError):
    """Raised when an insert collides with an existing key."""


class StoreUnavailableError(RepositoryError):
    """Raised when the durable store cannot be reached."""
