"""Translation of test filters into runner invocations."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from runwatch.domain import (
    ExecutionId,
    GrepFilter,
    IndividualTestFilter,
    SuiteFilter,
    TagFilter,
    TestFilter,
)
from runwatch.runtime import RunnerInvocation

logger = logging.getLogger(__name__)

_UNSAFE_VALUE_CHARS = (";", "&", "|", "`")
_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True, slots=True)
class RunnerPlan:
    """What a filter means for the runner and for humans."""

    suite_name: str
    description: str
    arguments: tuple[str, ...]
    selectors: tuple[str, ...]


def _plan_individual(selection: IndividualTestFilter) -> RunnerPlan:
    test_class, method = selection.test_class, selection.test_method
    if method:
        selector, label = f"{test_class}#{method}", f"{test_class}.{method}"
    else:
        selector, label = test_class, test_class
    return RunnerPlan(
        suite_name=test_class,
        description=f"Individual test: {label}",
        arguments=(f"-Dtest={selector}",),
        selectors=(label,),
    )


def _plan_tags(selection: TagFilter) -> RunnerPlan:
    tags = selection.tags
    return RunnerPlan(
        suite_name="tagged-tests-" + "-".join(tags),
        description="Tests with tags: " + ", ".join(tags),
        arguments=("-Djunit.jupiter.includeTags=" + "|".join(tags),),
        selectors=tuple(f"@{tag}" for tag in tags),
    )


def _plan_grep(selection: GrepFilter) -> RunnerPlan:
    pattern = selection.pattern
    return RunnerPlan(
        suite_name="grep-" + _NON_ALPHANUMERIC.sub("-", pattern),
        description=f"Tests matching pattern: {pattern}",
        arguments=(f"-Dtest={pattern}",),
        selectors=(pattern,),
    )


def _plan_suite(selection: SuiteFilter) -> RunnerPlan:
    name = selection.suite_name
    return RunnerPlan(
        suite_name=name,
        description=f"Test suite: {name}",
        arguments=(f"-Dtest={name}TestSuite",),
        selectors=(f"{name}TestSuite",),
    )


_PLANNERS: dict[type, Callable[..., RunnerPlan]] = {
    IndividualTestFilter: _plan_individual,
    TagFilter: _plan_tags,
    GrepFilter: _plan_grep,
    SuiteFilter: _plan_suite,
}


def plan_for(selection: TestFilter) -> RunnerPlan:
    try:
        planner = _PLANNERS[type(selection)]
    except KeyError as exc:
        raise TypeError(f"Unsupported test filter {type(selection).__name__}") from exc
    return planner(selection)


def parameter_arguments(parameters: Mapping[str, str]) -> tuple[str, ...]:
    """Render extra ``-Dkey=value`` properties, skipping blank or unsafe entries."""

    arguments: list[str] = []
    for key, value in parameters.items():
        if not key or not key.strip() or not value or not value.strip():
            logger.warning("Skipping invalid parameter: %s=%s", key, value)
            continue
        if " " in key or any(char in value for char in _UNSAFE_VALUE_CHARS):
            logger.warning("Skipping potentially unsafe parameter: %s=%s", key, value)
            continue
        arguments.append(f"-D{key.strip()}={value.strip()}")
    return tuple(arguments)


def runner_environment(
    execution_id: ExecutionId,
    suite_name: str,
    environment: str,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    env = dict(os.environ if base_env is None else base_env)
    env.update(
        {
            "RUNWATCH_EXECUTION_ID": str(execution_id),
            "RUNWATCH_SUITE_NAME": suite_name,
            "RUNWATCH_ENV": environment,
        }
    )
    return env


def build_invocation(
    base_command: tuple[str, ...],
    plan: RunnerPlan,
    *,
    execution_id: ExecutionId,
    environment: str,
    parameters: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    base_env: Mapping[str, str] | None = None,
) -> RunnerInvocation:
    command = (*base_command, *plan.arguments, *parameter_arguments(parameters or {}))
    return RunnerInvocation(
        command=command,
        env=runner_environment(execution_id, plan.suite_name, environment, base_env),
        cwd=cwd,
        label=str(execution_id),
    )


__all__ = [
    "RunnerPlan",
    "build_invocation",
    "parameter_arguments",
    "plan_for",
    "runner_environment",
]
