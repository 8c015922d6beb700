"""Domain models for executions, results and live status."""

from .base import DomainModel, WireModel
from .enums import EXECUTION_STATUSES, FAILURE_STATUSES, FieldKind, FilterKind, TestStatus
from .execution import Execution, TestResult, utc_now
from .request import (
    ExecutionRequest,
    GrepFilter,
    IndividualTestFilter,
    ResultReport,
    SubmissionReceipt,
    SuiteFilter,
    TagFilter,
    TestFilter,
)
from .status import ActiveExecution, ExecutionStatusSnapshot, ExecutionUpdate
from .types import ExecutionId, JsonMapping, TestId

__all__ = [
    "EXECUTION_STATUSES",
    "FAILURE_STATUSES",
    "ActiveExecution",
    "DomainModel",
    "Execution",
    "ExecutionId",
    "ExecutionRequest",
    "ExecutionStatusSnapshot",
    "ExecutionUpdate",
    "FieldKind",
    "FilterKind",
    "GrepFilter",
    "IndividualTestFilter",
    "JsonMapping",
    "ResultReport",
    "SubmissionReceipt",
    "SuiteFilter",
    "TagFilter",
    "TestFilter",
    "TestId",
    "TestResult",
    "TestStatus",
    "WireModel",
    "utc_now",
]
