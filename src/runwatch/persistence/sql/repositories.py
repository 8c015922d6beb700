"""SQL repository implementations."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from runwatch.domain import Execution, ExecutionId, TestId, TestResult, TestStatus
from runwatch.persistence.errors import DuplicateKeyError, NotFoundError
from runwatch.persistence.interfaces import ExecutionRepository, TestResultRepository

from .models import ExecutionRecord, TestResultRecord


def _to_execution(record: ExecutionRecord) -> Execution:
    return Execution(
        execution_id=ExecutionId(record.execution_id),
        suite_name=record.suite_name,
        status=TestStatus(record.status),
        environment=record.environment,
        start_time=record.start_time,
        end_time=record.end_time,
    )


def _to_result(record: TestResultRecord) -> TestResult:
    return TestResult(
        execution_id=ExecutionId(record.execution_id),
        test_id=TestId(record.test_id),
        test_name=record.test_name,
        status=TestStatus(record.status),
        start_time=record.start_time,
        end_time=record.end_time,
    )


class SqlExecutionRepository(ExecutionRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _record(self, execution_id: ExecutionId) -> ExecutionRecord | None:
        stmt: Select[tuple[ExecutionRecord]] = select(ExecutionRecord).where(
            ExecutionRecord.execution_id == str(execution_id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def get(self, execution_id: ExecutionId) -> Execution | None:
        record = await self._record(execution_id)
        if record is None:
            return None
        return _to_execution(record)

    async def add(self, execution: Execution) -> None:
        self._session.add(
            ExecutionRecord(
                execution_id=str(execution.execution_id),
                suite_name=execution.suite_name,
                status=execution.status.value,
                environment=execution.environment,
                start_time=execution.start_time,
                end_time=execution.end_time,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError as exc:
            msg = f"Execution {execution.execution_id} already exists"
            raise DuplicateKeyError(msg) from exc

    async def update_status(
        self,
        execution_id: ExecutionId,
        status: TestStatus,
        end_time: datetime | None,
    ) -> None:
        record = await self._record(execution_id)
        if record is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        record.status = status.value
        record.end_time = end_time
        await self._session.flush()

    async def list_by_status(self, status: TestStatus) -> Sequence[Execution]:
        stmt: Select[tuple[ExecutionRecord]] = (
            select(ExecutionRecord)
            .where(ExecutionRecord.status == status.value)
            .order_by(ExecutionRecord.start_time.desc())
        )
        result = await self._session.execute(stmt)
        return [_to_execution(r) for r in result.scalars().all()]

    async def delete(self, execution_id: ExecutionId) -> bool:
        record = await self._record(execution_id)
        if record is None:
            return False
        await self._session.execute(
            delete(TestResultRecord).where(TestResultRecord.execution_id == str(execution_id))
        )
        await self._session.delete(record)
        await self._session.flush()
        return True


class SqlTestResultRepository(TestResultRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _record(self, execution_id: ExecutionId, test_id: TestId) -> TestResultRecord | None:
        stmt: Select[tuple[TestResultRecord]] = select(TestResultRecord).where(
            TestResultRecord.execution_id == str(execution_id),
            TestResultRecord.test_id == str(test_id),
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def get(self, execution_id: ExecutionId, test_id: TestId) -> TestResult | None:
        record = await self._record(execution_id, test_id)
        if record is None:
            return None
        return _to_result(record)

    async def add(self, result: TestResult) -> None:
        self._session.add(
            TestResultRecord(
                execution_id=str(result.execution_id),
                test_id=str(result.test_id),
                test_name=result.test_name,
                status=result.status.value,
                start_time=result.start_time,
                end_time=result.end_time,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError as exc:
            msg = f"Result {result.test_id} already exists for execution {result.execution_id}"
            raise DuplicateKeyError(msg) from exc

    async def update(self, result: TestResult) -> None:
        record = await self._record(result.execution_id, result.test_id)
        if record is None:
            raise NotFoundError(f"Result {result.test_id} not found")
        record.test_name = result.test_name
        record.status = result.status.value
        record.start_time = result.start_time
        record.end_time = result.end_time
        await self._session.flush()

    async def list_for_execution(self, execution_id: ExecutionId) -> Sequence[TestResult]:
        stmt: Select[tuple[TestResultRecord]] = (
            select(TestResultRecord)
            .where(TestResultRecord.execution_id == str(execution_id))
            .order_by(TestResultRecord.id)
        )
        result = await self._session.execute(stmt)
        return [_to_result(r) for r in result.scalars().all()]


__all__ = ["SqlExecutionRepository", "SqlTestResultRepository"]
