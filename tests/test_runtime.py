from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path

import pytest

from runwatch.runtime import AsyncioProcessLauncher, RunnerInvocation, RunnerOutcome

SCRIPT = """
import os, sys
print("[INFO] Downloading plugin")
print("plain chatter")
print("Tests run: 3, Failures: 1", file=sys.stderr)
print(os.environ["RUNWATCH_EXECUTION_ID"])
sys.exit(3)
"""


def test_launcher_streams_output_and_reports_exit_code(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    invocation = RunnerInvocation(
        command=(sys.executable, "-c", SCRIPT),
        env={"RUNWATCH_EXECUTION_ID": "exec-7", "PATH": "/usr/bin:/bin"},
        cwd=tmp_path,
        label="exec-7",
    )

    async def _run() -> RunnerOutcome:
        handle = await AsyncioProcessLauncher().spawn(invocation)
        assert handle.pid is not None
        return await handle.wait()

    with caplog.at_level(logging.INFO, logger="runwatch.runtime.process"):
        outcome = asyncio.run(_run())

    assert outcome.exit_code == 3
    assert not outcome.succeeded
    assert outcome.output_lines == 4
    assert outcome.completed_at >= outcome.started_at
    info_lines = [
        record.getMessage() for record in caplog.records if record.levelno == logging.INFO
    ]
    assert "[exec-7] [INFO] Downloading plugin" in info_lines
    assert "[exec-7] Tests run: 3, Failures: 1" in info_lines
    assert not any("plain chatter" in line for line in info_lines)


def test_launcher_raises_os_error_for_missing_executable(tmp_path: Path) -> None:
    invocation = RunnerInvocation(command=(str(tmp_path / "no-such-runner"),), label="x")

    with pytest.raises(OSError):
        asyncio.run(AsyncioProcessLauncher().spawn(invocation))


OVERLONG_LINE_SCRIPT = """
import sys, time
sys.stdout.write("x" * (4 * 1024 * 1024) + "\\n")
sys.stdout.flush()
time.sleep(60)
"""


def test_runner_is_killed_when_output_cannot_be_read(tmp_path: Path) -> None:
    invocation = RunnerInvocation(
        command=(sys.executable, "-c", OVERLONG_LINE_SCRIPT),
        env={"PATH": "/usr/bin:/bin"},
        cwd=tmp_path,
        label="exec-long",
    )

    async def _run() -> int:
        handle = await AsyncioProcessLauncher().spawn(invocation)
        assert handle.pid is not None
        with pytest.raises(ValueError):
            await asyncio.wait_for(handle.wait(), timeout=30)
        return handle.pid

    pid = asyncio.run(_run())

    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
