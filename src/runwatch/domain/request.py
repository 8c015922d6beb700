"""Execution request and submission receipt models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import Field

from .base import WireModel
from .enums import FilterKind, TestStatus
from .execution import utc_now
from .types import ExecutionId


class IndividualTestFilter(WireModel):
    """Run one test class, optionally narrowed to a single method."""

    kind: Literal["individual"] = "individual"
    test_class: str
    test_method: str | None = None


class TagFilter(WireModel):
    """Run every test carrying at least one of the tags."""

    kind: Literal["tags"] = "tags"
    tags: tuple[str, ...]


class GrepFilter(WireModel):
    """Run tests whose class name matches a wildcard pattern."""

    kind: Literal["grep"] = "grep"
    pattern: str


class SuiteFilter(WireModel):
    """Run a named test suite."""

    kind: Literal["suite"] = "suite"
    suite_name: str


TestFilter = Annotated[
    IndividualTestFilter | TagFilter | GrepFilter | SuiteFilter,
    Field(discriminator="kind"),
]


class ExecutionRequest(WireModel):
    """Caller-supplied description of which tests to run and where."""

    selection: TestFilter
    environment: str = "dev"
    execution_id: str | None = None
    parameters: dict[str, str] = Field(default_factory=dict)

    @property
    def filter_kind(self) -> FilterKind:
        return FilterKind(self.selection.kind)


class SubmissionReceipt(WireModel):
    """Immediate answer to a submission; the execution continues in the background."""

    execution_id: ExecutionId
    status: TestStatus = TestStatus.RUNNING
    execution_type: FilterKind
    description: str
    start_time: datetime = Field(default_factory=utc_now)
    tests_to_execute: tuple[str, ...] = ()
    environment: str
    monitoring_url: str
    live_updates_url: str
    results_url: str


class ResultReport(WireModel):
    """Completion report for one test sent by the recording hook."""

    test_id: str = Field(min_length=1, max_length=512)
    test_name: str = Field(min_length=1, max_length=1024)
    status: TestStatus
    start_time: datetime = Field(default_factory=utc_now)
    end_time: datetime | None = None


__all__ = [
    "ExecutionRequest",
    "GrepFilter",
    "IndividualTestFilter",
    "ResultReport",
    "SubmissionReceipt",
    "SuiteFilter",
    "TagFilter",
    "TestFilter",
]
