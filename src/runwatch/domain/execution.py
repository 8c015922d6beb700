"""Execution and test result domain models."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from runwatch.utils import parse_timestamp, utc_now

from .base import DomainModel
from .enums import TestStatus
from .types import ExecutionId, TestId


def _coerce_utc(value: datetime | str | None) -> datetime | None:
    return None if value is None else parse_timestamp(value)


class TestResult(DomainModel):
    """Outcome of one test, unique per (execution_id, test_id)."""

    execution_id: ExecutionId
    test_id: TestId
    test_name: str
    status: TestStatus
    start_time: datetime
    end_time: datetime | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def ensure_timezone(cls, value: datetime | str | None) -> datetime | None:
        return _coerce_utc(value)


class Execution(DomainModel):
    """One batch of tests sharing an identifier and lifecycle."""

    execution_id: ExecutionId
    suite_name: str
    status: TestStatus = TestStatus.RUNNING
    environment: str
    start_time: datetime = Field(default_factory=utc_now)
    end_time: datetime | None = None
    results: tuple[TestResult, ...] = ()

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def ensure_timezone(cls, value: datetime | str | None) -> datetime | None:
        return _coerce_utc(value)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


__all__ = ["Execution", "TestResult", "utc_now"]
