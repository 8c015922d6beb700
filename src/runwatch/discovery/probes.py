"""Best-effort environment probes used by endpoint discovery."""

from __future__ import annotations

import logging
import socket
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProbeAttempt:
    """Record of one probe and what it found."""

    kind: str
    target: str
    found: bool

    def describe(self) -> str:
        verdict = "found" if self.found else "not found"
        return f"{self.kind} {self.target}: {verdict}"


class PortProbe:
    """Short-timeout TCP connect check."""

    def __init__(self, *, timeout_seconds: float = 0.1) -> None:
        self._timeout_seconds = timeout_seconds

    def __call__(self, host: str, port: int) -> bool:
        try:
            with socket.create_connection((host, port), timeout=self._timeout_seconds):
                return True
        except OSError:
            return False


class ContainerProbe:
    """Checks the local container runtime for a running container by exact name."""

    def __init__(
        self,
        *,
        command: Sequence[str] = ("docker", "ps", "--format", "{{.Names}}"),
        timeout_seconds: float = 2.0,
    ) -> None:
        self._command = tuple(command)
        self._timeout_seconds = timeout_seconds

    def list_names(self) -> frozenset[str]:
        try:
            completed = subprocess.run(
                self._command,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("Could not query container runtime: %s", exc)
            return frozenset()
        if completed.returncode != 0:
            logger.debug(
                "Container runtime exited with %s: %s",
                completed.returncode,
                completed.stderr.strip(),
            )
            return frozenset()
        return frozenset(line.strip() for line in completed.stdout.splitlines() if line.strip())

    def __call__(self, name: str) -> bool:
        return name in self.list_names()


__all__ = ["ContainerProbe", "PortProbe", "ProbeAttempt"]
