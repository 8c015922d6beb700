"""Entry point for per-test completion reports."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from runwatch.domain import FAILURE_STATUSES, ExecutionId, TestId, TestResult, TestStatus
from runwatch.persistence import ExecutionNotFoundError, PersistenceAdapter

from .orchestrator import ChangeNotifier


class ResultRecorder:
    """Upserts results with bounded concurrency and announces each change.

    A failing result marks its execution FAILED straight away so observers do
    not wait for the runner to exit.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        *,
        notifier: ChangeNotifier | None = None,
        concurrency: int = 8,
        logger: logging.Logger | None = None,
    ) -> None:
        self._adapter = adapter
        self._notifier = notifier
        self._semaphore = asyncio.Semaphore(max(concurrency, 1))
        self._logger = logger or logging.getLogger(__name__)

    async def record_result(
        self,
        execution_id: ExecutionId,
        test_id: TestId,
        name: str,
        status: TestStatus,
        start: datetime,
        end: datetime | None = None,
    ) -> TestResult:
        async with self._semaphore:
            try:
                result = await self._adapter.upsert_result(
                    execution_id, test_id, name, status, start, end
                )
            except ExecutionNotFoundError:
                self._logger.warning(
                    "Dropping result %s for unknown execution %s", test_id, execution_id
                )
                raise
            if status in FAILURE_STATUSES:
                await self._adapter.finalize_execution(execution_id, TestStatus.FAILED)
        self._logger.debug("Recorded %s %s for execution %s", test_id, status, execution_id)
        if self._notifier is not None:
            await self._notifier.notify(execution_id, status)
        return result


__all__ = ["ResultRecorder"]
