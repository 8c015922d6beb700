"""Pure roll-up of result statuses into execution progress and outcome."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from runwatch.domain import (
    FAILURE_STATUSES,
    ActiveExecution,
    Execution,
    ExecutionStatusSnapshot,
    TestResult,
    TestStatus,
)
from runwatch.utils import utc_now


@dataclass(frozen=True, slots=True)
class ResultSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    running: int = 0


def compute_progress(total: int, passed: int, failed: int, skipped: int) -> float:
    """Percentage of results that reached a terminal status; 0 for an empty set."""

    if total <= 0:
        return 0.0
    return round(100.0 * (passed + failed + skipped) / total, 2)


def compute_outcome(statuses: Iterable[TestStatus]) -> TestStatus:
    """Roll result statuses up to RUNNING, PASSED or FAILED.

    Any failure wins immediately, even while other results are still running.
    ERROR and TIMEOUT results fold into FAILED at the execution level. PASSED
    requires at least one result and no RUNNING results.
    """

    total = 0
    running = False
    for status in statuses:
        if status in FAILURE_STATUSES:
            return TestStatus.FAILED
        total += 1
        if status is TestStatus.RUNNING:
            running = True
    if total > 0 and not running:
        return TestStatus.PASSED
    return TestStatus.RUNNING


def summarize(results: Iterable[TestResult]) -> ResultSummary:
    total = passed = failed = skipped = running = 0
    for result in results:
        total += 1
        if result.status is TestStatus.PASSED:
            passed += 1
        elif result.status in FAILURE_STATUSES:
            failed += 1
        elif result.status is TestStatus.SKIPPED:
            skipped += 1
        else:
            running += 1
    return ResultSummary(
        total=total, passed=passed, failed=failed, skipped=skipped, running=running
    )


def build_snapshot(execution: Execution, now: datetime | None = None) -> ExecutionStatusSnapshot:
    summary = summarize(execution.results)
    reference = execution.end_time or now or utc_now()
    duration = max((reference - execution.start_time).total_seconds(), 0.0)
    return ExecutionStatusSnapshot(
        execution_id=execution.execution_id,
        suite_name=execution.suite_name,
        environment=execution.environment,
        status=execution.status,
        outcome=compute_outcome(result.status for result in execution.results),
        start_time=execution.start_time,
        end_time=execution.end_time,
        total=summary.total,
        passed=summary.passed,
        failed=summary.failed,
        skipped=summary.skipped,
        running=summary.running,
        progress=compute_progress(summary.total, summary.passed, summary.failed, summary.skipped),
        duration=round(duration, 3),
    )


def build_active_entry(execution: Execution) -> ActiveExecution:
    summary = summarize(execution.results)
    return ActiveExecution(
        execution_id=execution.execution_id,
        suite_name=execution.suite_name,
        environment=execution.environment,
        start_time=execution.start_time,
        total=summary.total,
        progress=compute_progress(summary.total, summary.passed, summary.failed, summary.skipped),
    )


__all__ = [
    "ResultSummary",
    "build_active_entry",
    "build_snapshot",
    "compute_outcome",
    "compute_progress",
    "summarize",
]
