"""Execution orchestration service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from runwatch.domain import (
    ExecutionId,
    ExecutionRequest,
    SubmissionReceipt,
    TestStatus,
)
from runwatch.monitoring.aggregator import compute_outcome
from runwatch.persistence import PersistenceAdapter, RepositoryError
from runwatch.runtime import ProcessLauncher, RunnerInvocation

from .catalog import SelectorCatalog, TestCatalog
from .commands import build_invocation, plan_for
from .exceptions import ExecutionAlreadyActiveError, InvalidInputError, ProcessSupervisionError
from .validator import InputValidator


class ChangeNotifier(Protocol):
    async def notify(self, execution_id: ExecutionId, status: TestStatus) -> None: ...


def _new_execution_id() -> ExecutionId:
    return ExecutionId(str(uuid4()))


class ExecutionOrchestrator:
    """Validates filter requests, launches the runner and finalizes each execution."""

    def __init__(
        self,
        adapter: PersistenceAdapter,
        launcher: ProcessLauncher,
        *,
        notifier: ChangeNotifier | None = None,
        validator: InputValidator | None = None,
        catalog: TestCatalog | None = None,
        runner_command: tuple[str, ...] = ("./mvnw", "test"),
        runner_workdir: Path | None = None,
        public_base_url: str = "",
        base_env: Mapping[str, str] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._adapter = adapter
        self._launcher = launcher
        self._notifier = notifier
        self._validator = validator or InputValidator()
        self._catalog = catalog or SelectorCatalog()
        self._runner_command = runner_command
        self._runner_workdir = runner_workdir
        self._public_base_url = public_base_url.rstrip("/")
        self._base_env = base_env
        self._logger = logger or logging.getLogger(__name__)
        self._claimed: set[ExecutionId] = set()
        self._tasks: dict[ExecutionId, asyncio.Task[TestStatus]] = {}

    @property
    def active_execution_ids(self) -> tuple[ExecutionId, ...]:
        return tuple(eid for eid, task in self._tasks.items() if not task.done())

    async def submit(self, request: ExecutionRequest) -> SubmissionReceipt:
        """Start an execution and return without waiting for the runner.

        Raises ``InvalidInputError`` before anything is stored when a field
        fails validation, and ``ExecutionAlreadyActiveError`` when the id is
        still running here or in the store.
        """

        normalized = self._validator.validate_request(request)
        plan = plan_for(normalized.selection)
        execution_id = ExecutionId(normalized.execution_id or _new_execution_id())
        environment = normalized.environment

        self._prune_finished()
        if execution_id in self._claimed or execution_id in self._tasks:
            raise ExecutionAlreadyActiveError(execution_id)
        self._claimed.add(execution_id)
        try:
            existing = await self._adapter.load_execution(execution_id)
            if existing is not None:
                if existing.status is TestStatus.RUNNING:
                    raise ExecutionAlreadyActiveError(execution_id)
                raise InvalidInputError(
                    "execution_id",
                    f"Execution id '{execution_id}' belongs to a finished execution",
                )
            tests = tuple(await self._catalog.tests_for(normalized.selection))
            created = await self._adapter.ensure_execution(
                execution_id, plan.suite_name, environment
            )
            if not created:
                raise ExecutionAlreadyActiveError(execution_id)
            invocation = build_invocation(
                self._runner_command,
                plan,
                execution_id=execution_id,
                environment=environment,
                parameters=normalized.parameters,
                cwd=self._runner_workdir,
                base_env=self._base_env,
            )
            self._tasks[execution_id] = asyncio.create_task(
                self._supervise(execution_id, invocation),
                name=f"runwatch-execution-{execution_id}",
            )
        finally:
            self._claimed.discard(execution_id)

        self._logger.info(
            "Submitted execution %s (%s) in %s: %s",
            execution_id,
            normalized.filter_kind,
            environment,
            plan.description,
        )
        base = f"{self._public_base_url}/api/v1/executions/{execution_id}"
        return SubmissionReceipt(
            execution_id=execution_id,
            execution_type=normalized.filter_kind,
            description=plan.description,
            tests_to_execute=tests,
            environment=environment,
            monitoring_url=f"{base}/status",
            live_updates_url=f"{base}/live",
            results_url=f"{base}/results",
        )

    async def wait(self, execution_id: ExecutionId) -> TestStatus | None:
        """Wait for supervision of ``execution_id`` to finish; None when unknown."""

        task = self._tasks.get(execution_id)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            self._logger.info("Waiting for %d execution(s) to finish", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _supervise(
        self, execution_id: ExecutionId, invocation: RunnerInvocation
    ) -> TestStatus:
        try:
            try:
                handle = await self._launcher.spawn(invocation)
                outcome = await handle.wait()
            except (OSError, ValueError) as exc:
                raise ProcessSupervisionError(
                    f"Runner for execution {execution_id} failed: {exc}"
                ) from exc
        except ProcessSupervisionError as exc:
            self._logger.error("%s", exc)
            status = TestStatus.ERROR
        except asyncio.CancelledError:
            self._logger.warning("Supervision of execution %s cancelled", execution_id)
            await asyncio.shield(self._finalize(execution_id, TestStatus.ERROR))
            raise
        except Exception:
            self._logger.exception("Supervision of execution %s failed", execution_id)
            status = TestStatus.ERROR
        else:
            self._logger.info(
                "Runner for execution %s exited with code %s", execution_id, outcome.exit_code
            )
            status = await self._status_for_exit(execution_id, outcome.exit_code)
        await self._finalize(execution_id, status)
        return status

    async def _status_for_exit(self, execution_id: ExecutionId, exit_code: int) -> TestStatus:
        if exit_code != 0:
            return TestStatus.FAILED
        try:
            execution = await self._adapter.load_execution(execution_id)
        except RepositoryError as exc:
            self._logger.warning("Could not read results of %s: %s", execution_id, exc)
            return TestStatus.PASSED
        if execution is not None:
            rollup = compute_outcome(result.status for result in execution.results)
            if rollup is TestStatus.FAILED:
                return TestStatus.FAILED
        return TestStatus.PASSED

    async def _finalize(self, execution_id: ExecutionId, status: TestStatus) -> None:
        try:
            await self._adapter.finalize_execution(execution_id, status, force=True)
        except RepositoryError as exc:
            self._logger.error(
                "Could not finalize execution %s as %s: %s", execution_id, status, exc
            )
        if self._notifier is not None:
            await self._notifier.notify(execution_id, status)

    def _prune_finished(self) -> None:
        for execution_id in [eid for eid, task in self._tasks.items() if task.done()]:
            del self._tasks[execution_id]


__all__ = ["ChangeNotifier", "ExecutionOrchestrator"]
