"""Read-side status models pushed to subscribers."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .base import WireModel
from .enums import TestStatus
from .execution import utc_now
from .types import ExecutionId


class ExecutionStatusSnapshot(WireModel):
    """Aggregated progress of one execution at a point in time."""

    execution_id: ExecutionId
    suite_name: str
    environment: str
    status: TestStatus
    outcome: TestStatus
    start_time: datetime
    end_time: datetime | None = None
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    running: int = 0
    progress: float = 0.0
    duration: float = 0.0


class ActiveExecution(WireModel):
    """Entry in the live list of RUNNING executions."""

    execution_id: ExecutionId
    suite_name: str
    environment: str
    start_time: datetime
    total: int = 0
    progress: float = 0.0


class ExecutionUpdate(WireModel):
    """Change notice exchanged between instances over the shared channel.

    Receivers treat it only as a hint that something changed and re-read the
    store before pushing anything.
    """

    execution_id: ExecutionId
    status: TestStatus
    timestamp: datetime = Field(default_factory=utc_now)


__all__ = ["ActiveExecution", "ExecutionStatusSnapshot", "ExecutionUpdate"]
