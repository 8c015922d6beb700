"""In-memory repository implementations for unit testing."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from types import TracebackType

from runwatch.domain import Execution, ExecutionId, TestId, TestResult, TestStatus
from runwatch.persistence.errors import DuplicateKeyError, NotFoundError
from runwatch.persistence.interfaces import (
    ExecutionRepository,
    TestResultRepository,
    UnitOfWork,
)

ResultKey = tuple[ExecutionId, TestId]


@dataclass
class InMemoryExecutionRepository(ExecutionRepository):
    _executions: dict[ExecutionId, Execution] = field(default_factory=dict)
    _results: dict[ResultKey, TestResult] = field(default_factory=dict)

    async def get(self, execution_id: ExecutionId) -> Execution | None:
        return self._executions.get(execution_id)

    async def add(self, execution: Execution) -> None:
        if execution.execution_id in self._executions:
            msg = f"Execution {execution.execution_id} already exists"
            raise DuplicateKeyError(msg)
        self._executions[execution.execution_id] = execution.model_copy(update={"results": ()})

    async def update_status(
        self,
        execution_id: ExecutionId,
        status: TestStatus,
        end_time: datetime | None,
    ) -> None:
        current = self._executions.get(execution_id)
        if current is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        self._executions[execution_id] = current.model_copy(
            update={"status": status, "end_time": end_time}
        )

    async def list_by_status(self, status: TestStatus) -> Sequence[Execution]:
        matching = [e for e in self._executions.values() if e.status is status]
        return sorted(matching, key=lambda execution: execution.start_time, reverse=True)

    async def delete(self, execution_id: ExecutionId) -> bool:
        if self._executions.pop(execution_id, None) is None:
            return False
        for key in [key for key in self._results if key[0] == execution_id]:
            del self._results[key]
        return True


@dataclass
class InMemoryTestResultRepository(TestResultRepository):
    _results: dict[ResultKey, TestResult] = field(default_factory=dict)

    async def get(self, execution_id: ExecutionId, test_id: TestId) -> TestResult | None:
        return self._results.get((execution_id, test_id))

    async def add(self, result: TestResult) -> None:
        key = (result.execution_id, result.test_id)
        if key in self._results:
            msg = f"Result {result.test_id} already exists for execution {result.execution_id}"
            raise DuplicateKeyError(msg)
        self._results[key] = result

    async def update(self, result: TestResult) -> None:
        key = (result.execution_id, result.test_id)
        if key not in self._results:
            raise NotFoundError(f"Result {result.test_id} not found")
        self._results[key] = result

    async def list_for_execution(self, execution_id: ExecutionId) -> Sequence[TestResult]:
        return [r for (owner, _), r in self._results.items() if owner == execution_id]


def _shared_results() -> dict[ResultKey, TestResult]:
    return {}


@dataclass
class InMemoryUnitOfWork(UnitOfWork):
    _results: dict[ResultKey, TestResult] = field(default_factory=_shared_results)
    execution_repository: InMemoryExecutionRepository = field(init=False)
    result_repository: InMemoryTestResultRepository = field(init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        # Both repositories see the same result rows so deletes cascade.
        self.execution_repository = InMemoryExecutionRepository(_results=self._results)
        self.result_repository = InMemoryTestResultRepository(_results=self._results)

    async def __aenter__(self) -> InMemoryUnitOfWork:
        await self._lock.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._lock.release()

    async def commit(self) -> None:
        return None

    async def rollback(self) -> None:
        return None
