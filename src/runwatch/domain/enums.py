"""Enumerations used across the runwatch domain layer."""

from __future__ import annotations

from enum import StrEnum


class TestStatus(StrEnum):
    """Status shared by executions and individual test results."""

    RUNNING = "RUNNING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"
    TIMEOUT = "TIMEOUT"

    @property
    def is_terminal(self) -> bool:
        return self is not TestStatus.RUNNING

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATUSES


FAILURE_STATUSES = frozenset({TestStatus.FAILED, TestStatus.ERROR, TestStatus.TIMEOUT})

EXECUTION_STATUSES = frozenset(
    {TestStatus.RUNNING, TestStatus.PASSED, TestStatus.FAILED, TestStatus.ERROR}
)


class FilterKind(StrEnum):
    """Ways a caller can select which tests the runner executes."""

    INDIVIDUAL = "individual"
    TAGS = "tags"
    GREP = "grep"
    SUITE = "suite"


class FieldKind(StrEnum):
    """Externally supplied strings subject to allow-list validation."""

    TEST_CLASS = "test_class"
    TEST_METHOD = "test_method"
    TAG = "tag"
    GREP_PATTERN = "grep_pattern"
    SUITE_NAME = "suite_name"
    EXECUTION_ID = "execution_id"
    ENVIRONMENT = "environment"
