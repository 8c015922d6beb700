"""Runner invocation and outcome models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from runwatch.utils import utc_now


@dataclass(frozen=True, slots=True)
class RunnerInvocation:
    """Fully resolved command line for one execution."""

    command: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: Path | None = None
    label: str = ""


@dataclass(slots=True)
class RunnerOutcome:
    """Exit status of a supervised runner process."""

    exit_code: int
    output_lines: int = 0
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime = field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0
