from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from types import TracebackType

import pytest
from sqlalchemy.exc import OperationalError

from runwatch.domain import ExecutionId, TestId, TestStatus
from runwatch.monitoring import StatusService
from runwatch.persistence import (
    ExecutionNotFoundError,
    InMemoryUnitOfWork,
    PersistenceAdapter,
    StoreUnavailableError,
    UnitOfWork,
    transition_allowed,
)

START = datetime(2024, 5, 1, 9, 30, tzinfo=UTC)
EXEC = ExecutionId("exec-1")


def _adapter() -> tuple[PersistenceAdapter, InMemoryUnitOfWork]:
    uow = InMemoryUnitOfWork()
    return PersistenceAdapter(lambda: uow), uow


class _FlakyUnitOfWork:
    """Delegates to a real unit of work until ``down`` is set."""

    def __init__(self, inner: InMemoryUnitOfWork) -> None:
        self.inner = inner
        self.down = False

    def factory(self) -> Callable[[], UnitOfWork]:
        return lambda: self  # type: ignore[return-value]

    async def __aenter__(self) -> InMemoryUnitOfWork:
        if self.down:
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        return await self.inner.__aenter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.inner.__aexit__(exc_type, exc, tb)


@pytest.mark.parametrize(
    ("current", "target", "force", "expected"),
    [
        (TestStatus.RUNNING, TestStatus.PASSED, False, True),
        (TestStatus.RUNNING, TestStatus.FAILED, False, True),
        (TestStatus.PASSED, TestStatus.FAILED, False, True),
        (TestStatus.PASSED, TestStatus.ERROR, False, True),
        (TestStatus.FAILED, TestStatus.PASSED, False, False),
        (TestStatus.FAILED, TestStatus.PASSED, True, False),
        (TestStatus.FAILED, TestStatus.ERROR, False, False),
        (TestStatus.FAILED, TestStatus.ERROR, True, True),
        (TestStatus.ERROR, TestStatus.FAILED, True, False),
        (TestStatus.PASSED, TestStatus.RUNNING, True, False),
        (TestStatus.FAILED, TestStatus.FAILED, True, False),
    ],
)
def test_transition_table(
    current: TestStatus, target: TestStatus, force: bool, expected: bool
) -> None:
    assert transition_allowed(current, target, force=force) is expected


def test_ensure_execution_is_idempotent() -> None:
    adapter, _ = _adapter()

    async def _run() -> None:
        assert await adapter.ensure_execution(EXEC, "smoke", "dev") is True
        assert await adapter.ensure_execution(EXEC, "other", "prod") is False

        execution = await adapter.load_execution(EXEC)
        assert execution is not None
        assert execution.suite_name == "smoke"
        assert execution.status is TestStatus.RUNNING
        assert execution.end_time is None
        assert len(await adapter.list_running()) == 1

    asyncio.run(_run())


def test_concurrent_ensure_creates_one_row() -> None:
    adapter, _ = _adapter()

    async def _run() -> list[bool]:
        return list(
            await asyncio.gather(
                *(adapter.ensure_execution(EXEC, "smoke", "dev") for _ in range(5))
            )
        )

    created = asyncio.run(_run())

    assert created.count(True) == 1


def test_upsert_result_last_write_wins() -> None:
    adapter, _ = _adapter()

    async def _run() -> None:
        await adapter.ensure_execution(EXEC, "smoke", "dev")
        await adapter.upsert_result(
            EXEC, TestId("t1"), "Login", TestStatus.RUNNING, START
        )
        await adapter.upsert_result(
            EXEC, TestId("t1"), "Login", TestStatus.PASSED, START, START + timedelta(seconds=2)
        )

        execution = await adapter.load_execution(EXEC)
        assert execution is not None
        assert len(execution.results) == 1
        assert execution.results[0].status is TestStatus.PASSED
        assert execution.results[0].end_time == START + timedelta(seconds=2)

    asyncio.run(_run())


def test_upsert_result_defaults_end_time() -> None:
    adapter, _ = _adapter()

    async def _run() -> None:
        await adapter.ensure_execution(EXEC, "smoke", "dev")
        result = await adapter.upsert_result(
            EXEC, TestId("t1"), "Login", TestStatus.PASSED, START
        )
        assert result.end_time is not None
        assert result.end_time > START

    asyncio.run(_run())


def test_upsert_result_requires_execution() -> None:
    adapter, _ = _adapter()

    with pytest.raises(ExecutionNotFoundError):
        asyncio.run(
            adapter.upsert_result(
                ExecutionId("missing"), TestId("t1"), "Login", TestStatus.PASSED, START
            )
        )


def test_finalize_stamps_end_time_and_is_sticky() -> None:
    adapter, _ = _adapter()

    async def _run() -> None:
        await adapter.ensure_execution(EXEC, "smoke", "dev")
        assert await adapter.finalize_execution(EXEC, TestStatus.FAILED) is True
        assert await adapter.finalize_execution(EXEC, TestStatus.PASSED, force=True) is False
        assert await adapter.finalize_execution(EXEC, TestStatus.FAILED) is False

        execution = await adapter.load_execution(EXEC)
        assert execution is not None
        assert execution.status is TestStatus.FAILED
        assert execution.end_time is not None
        assert await adapter.list_running() == []

    asyncio.run(_run())


def test_finalize_rejects_result_only_statuses() -> None:
    adapter, _ = _adapter()

    async def _run() -> None:
        await adapter.ensure_execution(EXEC, "smoke", "dev")
        with pytest.raises(ValueError):
            await adapter.finalize_execution(EXEC, TestStatus.SKIPPED)
        with pytest.raises(ExecutionNotFoundError):
            await adapter.finalize_execution(ExecutionId("missing"), TestStatus.PASSED)

    asyncio.run(_run())


def test_delete_execution_removes_results() -> None:
    adapter, uow = _adapter()

    async def _run() -> None:
        await adapter.ensure_execution(EXEC, "smoke", "dev")
        await adapter.ensure_execution(ExecutionId("exec-2"), "smoke", "dev")
        await adapter.upsert_result(EXEC, TestId("t1"), "A", TestStatus.PASSED, START)
        await adapter.upsert_result(
            ExecutionId("exec-2"), TestId("t1"), "A", TestStatus.PASSED, START
        )

        assert await adapter.delete_execution(EXEC) is True
        assert await adapter.delete_execution(EXEC) is False
        assert await adapter.load_execution(EXEC) is None

    asyncio.run(_run())

    assert [key[0] for key in uow._results] == ["exec-2"]


def test_unreachable_store_raises_store_unavailable() -> None:
    flaky = _FlakyUnitOfWork(InMemoryUnitOfWork())
    flaky.down = True
    adapter = PersistenceAdapter(flaky.factory())

    with pytest.raises(StoreUnavailableError):
        asyncio.run(adapter.ensure_execution(EXEC, "smoke", "dev"))


def test_status_service_serves_last_good_snapshot_while_store_is_down() -> None:
    flaky = _FlakyUnitOfWork(InMemoryUnitOfWork())
    adapter = PersistenceAdapter(flaky.factory())
    service = StatusService(adapter)

    async def _run() -> None:
        await adapter.ensure_execution(EXEC, "smoke", "dev")
        await adapter.upsert_result(EXEC, TestId("t1"), "A", TestStatus.PASSED, START)
        before = await service.get_status(EXEC)
        active_before = await service.list_active()

        flaky.down = True
        assert await service.get_status(EXEC) == before
        assert await service.get_status(ExecutionId("never-seen")) is None
        assert await service.list_active() == active_before

    asyncio.run(_run())


def test_status_service_cache_is_bounded() -> None:
    flaky = _FlakyUnitOfWork(InMemoryUnitOfWork())
    adapter = PersistenceAdapter(flaky.factory())
    service = StatusService(adapter, cache_size=1)

    async def _run() -> None:
        await adapter.ensure_execution(ExecutionId("a"), "smoke", "dev")
        await adapter.ensure_execution(ExecutionId("b"), "smoke", "dev")
        await service.get_status(ExecutionId("a"))
        await service.get_status(ExecutionId("b"))

        flaky.down = True
        assert await service.get_status(ExecutionId("a")) is None
        assert await service.get_status(ExecutionId("b")) is not None

    asyncio.run(_run())
