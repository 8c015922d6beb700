"""Persistence layer abstractions for repositories and unit of work."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from types import TracebackType
from typing import Protocol

from runwatch.domain import Execution, ExecutionId, TestId, TestResult, TestStatus


class ExecutionRepository(Protocol):
    """Storage for execution rows, without their results."""

    async def get(self, execution_id: ExecutionId) -> Execution | None: ...

    async def add(self, execution: Execution) -> None: ...

    async def update_status(
        self,
        execution_id: ExecutionId,
        status: TestStatus,
        end_time: datetime | None,
    ) -> None: ...

    async def list_by_status(self, status: TestStatus) -> Sequence[Execution]: ...

    async def delete(self, execution_id: ExecutionId) -> bool: ...


class TestResultRepository(Protocol):
    """Storage for result rows keyed by (execution_id, test_id)."""

    async def get(self, execution_id: ExecutionId, test_id: TestId) -> TestResult | None: ...

    async def add(self, result: TestResult) -> None: ...

    async def update(self, result: TestResult) -> None: ...

    async def list_for_execution(self, execution_id: ExecutionId) -> Sequence[TestResult]: ...


class UnitOfWork(Protocol):
    """Transactional boundary for repository operations."""

    execution_repository: ExecutionRepository
    result_repository: TestResultRepository

    async def __aenter__(self) -> UnitOfWork: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
