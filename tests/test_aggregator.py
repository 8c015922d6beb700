from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from runwatch.domain import Execution, ExecutionId, TestId, TestResult, TestStatus
from runwatch.monitoring import (
    build_active_entry,
    build_snapshot,
    compute_outcome,
    compute_progress,
    summarize,
)

START = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _result(index: int, status: TestStatus) -> TestResult:
    return TestResult(
        execution_id=ExecutionId("exec-1"),
        test_id=TestId(f"test-{index}"),
        test_name=f"Test {index}",
        status=status,
        start_time=START,
        end_time=START + timedelta(seconds=1),
    )


def test_progress_is_zero_for_empty_set() -> None:
    assert compute_progress(0, 0, 0, 0) == 0.0


def test_progress_counts_terminal_results() -> None:
    assert compute_progress(5, 2, 1, 0) == 60.0
    assert compute_progress(3, 2, 1, 0) == 100.0
    assert compute_progress(4, 0, 0, 1) == 25.0


def test_outcome_running_without_results() -> None:
    assert compute_outcome([]) is TestStatus.RUNNING


@pytest.mark.parametrize("failure", [TestStatus.FAILED, TestStatus.ERROR, TestStatus.TIMEOUT])
def test_any_failure_wins_even_while_running(failure: TestStatus) -> None:
    statuses = [TestStatus.RUNNING, TestStatus.RUNNING, failure, TestStatus.PASSED]
    assert compute_outcome(statuses) is TestStatus.FAILED


def test_outcome_passed_requires_full_completion() -> None:
    assert compute_outcome([TestStatus.PASSED, TestStatus.RUNNING]) is TestStatus.RUNNING
    assert compute_outcome([TestStatus.PASSED, TestStatus.SKIPPED]) is TestStatus.PASSED


def test_summarize_folds_error_and_timeout_into_failed() -> None:
    summary = summarize(
        [
            _result(1, TestStatus.PASSED),
            _result(2, TestStatus.ERROR),
            _result(3, TestStatus.TIMEOUT),
            _result(4, TestStatus.SKIPPED),
            _result(5, TestStatus.RUNNING),
        ]
    )
    assert (summary.total, summary.passed, summary.failed, summary.skipped, summary.running) == (
        5,
        1,
        2,
        1,
        1,
    )


def test_snapshot_for_finished_execution() -> None:
    execution = Execution(
        execution_id=ExecutionId("exec-1"),
        suite_name="checkout",
        environment="dev",
        status=TestStatus.FAILED,
        start_time=START,
        end_time=START + timedelta(seconds=90),
        results=(
            _result(1, TestStatus.PASSED),
            _result(2, TestStatus.PASSED),
            _result(3, TestStatus.FAILED),
        ),
    )

    snapshot = build_snapshot(execution)

    assert snapshot.progress == 100.0
    assert snapshot.outcome is TestStatus.FAILED
    assert (snapshot.total, snapshot.passed, snapshot.failed) == (3, 2, 1)
    assert snapshot.duration == 90.0
    wire = snapshot.to_wire()
    assert wire["executionId"] == "exec-1"
    assert wire["suiteName"] == "checkout"
    assert wire["endTime"] is not None


def test_snapshot_duration_runs_until_now_while_running() -> None:
    execution = Execution(
        execution_id=ExecutionId("exec-2"),
        suite_name="smoke",
        environment="dev",
        start_time=START,
    )

    snapshot = build_snapshot(execution, now=START + timedelta(seconds=12))

    assert snapshot.duration == 12.0
    assert snapshot.status is TestStatus.RUNNING
    assert snapshot.progress == 0.0


def test_active_entry_carries_progress() -> None:
    execution = Execution(
        execution_id=ExecutionId("exec-3"),
        suite_name="smoke",
        environment="stage",
        start_time=START,
        results=(_result(1, TestStatus.PASSED), _result(2, TestStatus.RUNNING)),
    )

    entry = build_active_entry(execution)

    assert entry.total == 2
    assert entry.progress == 50.0
    assert entry.to_wire()["environment"] == "stage"
