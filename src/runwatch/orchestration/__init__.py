"""Orchestration layer exports."""

from .catalog import SelectorCatalog, TestCatalog
from .commands import RunnerPlan, build_invocation, parameter_arguments, plan_for
from .exceptions import (
    ExecutionAlreadyActiveError,
    InvalidInputError,
    OrchestrationError,
    ProcessSupervisionError,
)
from .orchestrator import ChangeNotifier, ExecutionOrchestrator
from .recording import ResultRecorder
from .validator import InputValidator

__all__ = [
    "ChangeNotifier",
    "ExecutionAlreadyActiveError",
    "ExecutionOrchestrator",
    "InputValidator",
    "InvalidInputError",
    "OrchestrationError",
    "ProcessSupervisionError",
    "ResultRecorder",
    "RunnerPlan",
    "SelectorCatalog",
    "TestCatalog",
    "build_invocation",
    "parameter_arguments",
    "plan_for",
]
