"""Exceptions for execution orchestration."""

from __future__ import annotations


class OrchestrationError(RuntimeError):
    """Base class for orchestration failures."""


class InvalidInputError(OrchestrationError):
    """Raised when a caller-supplied value fails allow-list validation."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class ExecutionAlreadyActiveError(OrchestrationError):
    """Raised when an execution id is submitted while it is still running."""

    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution {execution_id} is already running")


class ProcessSupervisionError(OrchestrationError):
    """Raised when the runner cannot be spawned or awaited."""
