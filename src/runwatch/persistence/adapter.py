"""Single writer for execution and result rows."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import InterfaceError, OperationalError

from runwatch.domain import (
    EXECUTION_STATUSES,
    Execution,
    ExecutionId,
    TestId,
    TestResult,
    TestStatus,
)
from runwatch.utils import ensure_utc, utc_now

from .errors import DuplicateKeyError, ExecutionNotFoundError, StoreUnavailableError
from .interfaces import UnitOfWork

UnitOfWorkFactory = Callable[[], UnitOfWork]

_SEVERITY = {
    TestStatus.PASSED: 0,
    TestStatus.FAILED: 1,
    TestStatus.ERROR: 2,
}


def transition_allowed(current: TestStatus, target: TestStatus, *, force: bool = False) -> bool:
    """Return whether an execution in ``current`` may move to ``target``.

    Terminal statuses are sticky except that a PASSED execution can still be
    marked FAILED or ERROR by any writer, and a forced write may escalate to a
    more severe terminal status. Nothing ever moves back to RUNNING.
    """

    if current is target:
        return False
    if current is TestStatus.RUNNING:
        return True
    if target is TestStatus.RUNNING:
        return False
    if current is TestStatus.PASSED and target in (TestStatus.FAILED, TestStatus.ERROR):
        return True
    if force:
        return _SEVERITY.get(target, -1) > _SEVERITY.get(current, -1)
    return False


class PersistenceAdapter:
    """Idempotent create/update of executions and results through a unit of work."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._logger = logger or logging.getLogger(__name__)

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        try:
            async with self._uow_factory() as uow:
                yield uow
        except (OperationalError, InterfaceError, OSError) as exc:
            raise StoreUnavailableError(f"Durable store unavailable: {exc}") from exc

    async def ensure_execution(
        self,
        execution_id: ExecutionId,
        suite_name: str,
        environment: str,
    ) -> bool:
        """Insert a RUNNING execution unless one already exists; True when created."""

        async with self._unit_of_work() as uow:
            if await uow.execution_repository.get(execution_id) is not None:
                return False
            execution = Execution(
                execution_id=execution_id,
                suite_name=suite_name,
                environment=environment,
                start_time=utc_now(),
            )
            try:
                await uow.execution_repository.add(execution)
            except DuplicateKeyError:
                await uow.rollback()
                self._logger.debug("Execution %s created concurrently", execution_id)
                return False
            await uow.commit()
        self._logger.info("Created execution %s (%s)", execution_id, suite_name)
        return True

    async def upsert_result(
        self,
        execution_id: ExecutionId,
        test_id: TestId,
        name: str,
        status: TestStatus,
        start: datetime,
        end: datetime | None = None,
    ) -> TestResult:
        result = TestResult(
            execution_id=execution_id,
            test_id=test_id,
            test_name=name,
            status=status,
            start_time=ensure_utc(start),
            end_time=ensure_utc(end) if end is not None else utc_now(),
        )
        async with self._unit_of_work() as uow:
            if await uow.execution_repository.get(execution_id) is None:
                raise ExecutionNotFoundError(execution_id)
            existing = await uow.result_repository.get(execution_id, test_id)
            if existing is None:
                try:
                    await uow.result_repository.add(result)
                except DuplicateKeyError:
                    await uow.rollback()
                    self._logger.debug(
                        "Result %s/%s inserted concurrently; updating", execution_id, test_id
                    )
                    await uow.result_repository.update(result)
            else:
                await uow.result_repository.update(result)
            await uow.commit()
        return result

    async def finalize_execution(
        self,
        execution_id: ExecutionId,
        status: TestStatus,
        *,
        force: bool = False,
    ) -> bool:
        """Move an execution to ``status``; True when the row was written."""

        if status not in EXECUTION_STATUSES:
            raise ValueError(f"{status} is not an execution status")
        async with self._unit_of_work() as uow:
            current = await uow.execution_repository.get(execution_id)
            if current is None:
                raise ExecutionNotFoundError(execution_id)
            if current.status is status:
                return False
            if not transition_allowed(current.status, status, force=force):
                self._logger.info(
                    "Ignoring transition of execution %s from %s to %s",
                    execution_id,
                    current.status,
                    status,
                )
                return False
            end_time = utc_now() if status.is_terminal else None
            await uow.execution_repository.update_status(execution_id, status, end_time)
            await uow.commit()
        self._logger.info(
            "Execution %s finalized %s (was %s)", execution_id, status, current.status
        )
        return True

    async def load_execution(self, execution_id: ExecutionId) -> Execution | None:
        async with self._unit_of_work() as uow:
            execution = await uow.execution_repository.get(execution_id)
            if execution is None:
                return None
            results = await uow.result_repository.list_for_execution(execution_id)
        return execution.model_copy(update={"results": tuple(results)})

    async def list_running(self) -> Sequence[Execution]:
        async with self._unit_of_work() as uow:
            executions = await uow.execution_repository.list_by_status(TestStatus.RUNNING)
            loaded = []
            for execution in executions:
                results = await uow.result_repository.list_for_execution(execution.execution_id)
                loaded.append(execution.model_copy(update={"results": tuple(results)}))
        return loaded

    async def delete_execution(self, execution_id: ExecutionId) -> bool:
        async with self._unit_of_work() as uow:
            deleted = await uow.execution_repository.delete(execution_id)
            await uow.commit()
        if deleted:
            self._logger.info("Deleted execution %s and its results", execution_id)
        return deleted


__all__ = ["PersistenceAdapter", "UnitOfWorkFactory", "transition_allowed"]
