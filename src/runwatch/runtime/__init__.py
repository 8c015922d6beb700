"""Runtime layer exports."""

from .models import RunnerInvocation, RunnerOutcome
from .process import (
    OUTPUT_MARKERS,
    AsyncioProcessLauncher,
    AsyncioRunnerHandle,
    ProcessLauncher,
    RunnerHandle,
)

__all__ = [
    "OUTPUT_MARKERS",
    "AsyncioProcessLauncher",
    "AsyncioRunnerHandle",
    "ProcessLauncher",
    "RunnerHandle",
    "RunnerInvocation",
    "RunnerOutcome",
]
