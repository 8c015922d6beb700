"""Shared type aliases for the domain layer."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NewType

ExecutionId = NewType("ExecutionId", str)
TestId = NewType("TestId", str)
JsonMapping = Mapping[str, Any]

__all__ = ["ExecutionId", "JsonMapping", "TestId"]
