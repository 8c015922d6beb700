"""Lookup of the tests a filter is expected to run."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from runwatch.domain import TestFilter

from .commands import plan_for


class TestCatalog(Protocol):
    """Source of the test names reported back in a submission receipt."""

    async def tests_for(self, selection: TestFilter) -> Sequence[str]: ...


class SelectorCatalog:
    """Reports the selectors themselves; no source scanning happens here."""

    async def tests_for(self, selection: TestFilter) -> Sequence[str]:
        return plan_for(selection).selectors


__all__ = ["SelectorCatalog", "TestCatalog"]
