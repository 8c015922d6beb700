"""Exceptions raised while locating the durable store."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .probes import ProbeAttempt


class DiscoveryError(RuntimeError):
    """Base class for endpoint discovery failures."""


class NoEndpointFoundError(DiscoveryError):
    """Raised when every discovery strategy has been exhausted."""

    def __init__(
        self,
        message: str,
        attempts: Sequence[ProbeAttempt] = (),
        *,
        remediation: Sequence[str] = (),
    ) -> None:
        self.attempts = tuple(attempts)
        self.remediation = tuple(remediation)
        super().__init__(message)

    def diagnostics(self) -> str:
        lines = [str(self.args[0])]
        if self.attempts:
            lines.append("Probes attempted:")
            lines.extend(f"  - {attempt.describe()}" for attempt in self.attempts)
        if self.remediation:
            lines.append("Solutions:")
            lines.extend(
                f"  {index}. {step}" for index, step in enumerate(self.remediation, start=1)
            )
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.diagnostics()
