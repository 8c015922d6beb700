"""Launching and supervising the external test runner."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Protocol

from runwatch.utils import utc_now

from .models import RunnerInvocation, RunnerOutcome

_LINE_LIMIT = 1024 * 1024

OUTPUT_MARKERS = ("ERROR", "FAILURE", "Downloading", "BUILD", "Tests run:")


class RunnerHandle(Protocol):
    """A started runner process."""

    @property
    def pid(self) -> int | None: ...

    async def wait(self) -> RunnerOutcome: ...


class ProcessLauncher(Protocol):
    """Spawns runner processes; OS-level failures surface as ``OSError``."""

    async def spawn(self, invocation: RunnerInvocation) -> RunnerHandle: ...


class AsyncioRunnerHandle:
    """Wraps an ``asyncio`` subprocess whose stderr is merged into stdout."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        invocation: RunnerInvocation,
        logger: logging.Logger,
    ) -> None:
        self._process = process
        self._invocation = invocation
        self._logger = logger
        self._started_at = utc_now()

    @property
    def pid(self) -> int | None:
        return self._process.pid

    async def wait(self) -> RunnerOutcome:
        lines = 0
        stream = self._process.stdout
        try:
            if stream is not None:
                async for raw in stream:
                    lines += 1
                    self._log_line(raw.decode("utf-8", errors="replace").rstrip())
        except Exception:
            await self._terminate()
            raise
        exit_code = await self._process.wait()
        return RunnerOutcome(
            exit_code=exit_code,
            output_lines=lines,
            started_at=self._started_at,
            completed_at=utc_now(),
        )

    async def _terminate(self) -> None:
        if self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()
        await self._process.wait()
        self._logger.warning(
            "[%s] Killed runner pid=%s after an output read failure",
            self._invocation.label,
            self._process.pid,
        )

    def _log_line(self, line: str) -> None:
        if not line:
            return
        label = self._invocation.label
        if any(marker in line for marker in OUTPUT_MARKERS):
            self._logger.info("[%s] %s", label, line)
        else:
            self._logger.debug("[%s] %s", label, line)


class AsyncioProcessLauncher:
    """Starts the runner in its own session so it outlives request handling."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    async def spawn(self, invocation: RunnerInvocation) -> AsyncioRunnerHandle:
        process = await asyncio.create_subprocess_exec(
            *invocation.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=dict(invocation.env),
            cwd=str(invocation.cwd) if invocation.cwd is not None else None,
            start_new_session=True,
            limit=_LINE_LIMIT,
        )
        self._logger.info(
            "[%s] Started runner pid=%s: %s",
            invocation.label,
            process.pid,
            " ".join(invocation.command),
        )
        return AsyncioRunnerHandle(process, invocation, self._logger)


__all__ = [
    "OUTPUT_MARKERS",
    "AsyncioProcessLauncher",
    "AsyncioRunnerHandle",
    "ProcessLauncher",
    "RunnerHandle",
]
