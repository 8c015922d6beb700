"""Allow-list validation of caller-supplied filter strings."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from runwatch.domain import (
    ExecutionRequest,
    FieldKind,
    GrepFilter,
    IndividualTestFilter,
    SuiteFilter,
    TagFilter,
)

from .exceptions import InvalidInputError

MAX_TAGS = 50


@dataclass(frozen=True, slots=True)
class FieldRule:
    label: str
    pattern: re.Pattern[str]
    max_length: int
    allowed: str


RULES: dict[FieldKind, FieldRule] = {
    FieldKind.TEST_CLASS: FieldRule(
        "Test class name",
        re.compile(r"^[a-zA-Z0-9._-]+$"),
        500,
        "alphanumeric characters, dots, underscores, and hyphens",
    ),
    FieldKind.TEST_METHOD: FieldRule(
        "Test method name",
        re.compile(r"^[a-zA-Z0-9_]+$"),
        200,
        "alphanumeric characters and underscores",
    ),
    FieldKind.TAG: FieldRule(
        "Tag",
        re.compile(r"^[a-zA-Z0-9_-]+$"),
        100,
        "alphanumeric characters, underscores, and hyphens",
    ),
    FieldKind.GREP_PATTERN: FieldRule(
        "Grep pattern",
        re.compile(r"^[a-zA-Z0-9._*?-]+$"),
        500,
        "alphanumeric characters, dots, underscores, hyphens, and the wildcards * and ?",
    ),
    FieldKind.SUITE_NAME: FieldRule(
        "Suite name",
        re.compile(r"^[a-zA-Z0-9._-]+$"),
        500,
        "alphanumeric characters, dots, underscores, and hyphens",
    ),
    FieldKind.EXECUTION_ID: FieldRule(
        "Execution id",
        re.compile(r"^[a-zA-Z0-9_-]+$"),
        64,
        "alphanumeric characters, underscores, and hyphens",
    ),
    FieldKind.ENVIRONMENT: FieldRule(
        "Environment",
        re.compile(r"^[a-zA-Z0-9_-]+$"),
        32,
        "alphanumeric characters, underscores, and hyphens",
    ),
}


class InputValidator:
    """Purely syntactic checks; never consults the store or a test catalog."""

    def validate(self, kind: FieldKind, value: str | None) -> str:
        """Return ``value`` stripped of surrounding whitespace or raise ``InvalidInputError``."""

        rule = RULES[kind]
        if value is None or not value.strip():
            raise InvalidInputError(kind.value, f"{rule.label} cannot be empty")
        trimmed = value.strip()
        if len(trimmed) > rule.max_length:
            raise InvalidInputError(
                kind.value,
                f"{rule.label} exceeds maximum length of {rule.max_length} characters",
            )
        if not rule.pattern.match(trimmed):
            raise InvalidInputError(
                kind.value,
                f"Invalid {rule.label.lower()}: '{trimmed}'. Only {rule.allowed} are allowed.",
            )
        return trimmed

    def validate_tags(self, tags: Sequence[str]) -> tuple[str, ...]:
        if not tags:
            raise InvalidInputError(FieldKind.TAG.value, "Tags list cannot be empty")
        if len(tags) > MAX_TAGS:
            raise InvalidInputError(
                FieldKind.TAG.value,
                f"Too many tags: {len(tags)}. Maximum allowed is {MAX_TAGS}",
            )
        return tuple(self.validate(FieldKind.TAG, tag) for tag in tags)

    def validate_request(self, request: ExecutionRequest) -> ExecutionRequest:
        """Validate every caller-supplied field and return the normalized request."""

        selection = request.selection
        if isinstance(selection, IndividualTestFilter):
            method = selection.test_method
            selection = selection.model_copy(
                update={
                    "test_class": self.validate(FieldKind.TEST_CLASS, selection.test_class),
                    "test_method": (
                        self.validate(FieldKind.TEST_METHOD, method)
                        if method is not None and method.strip()
                        else None
                    ),
                }
            )
        elif isinstance(selection, TagFilter):
            selection = selection.model_copy(update={"tags": self.validate_tags(selection.tags)})
        elif isinstance(selection, GrepFilter):
            selection = selection.model_copy(
                update={"pattern": self.validate(FieldKind.GREP_PATTERN, selection.pattern)}
            )
        elif isinstance(selection, SuiteFilter):
            selection = selection.model_copy(
                update={"suite_name": self.validate(FieldKind.SUITE_NAME, selection.suite_name)}
            )

        execution_id = request.execution_id
        if execution_id is not None:
            execution_id = self.validate(FieldKind.EXECUTION_ID, execution_id)
        return request.model_copy(
            update={
                "selection": selection,
                "environment": self.validate(FieldKind.ENVIRONMENT, request.environment),
                "execution_id": execution_id,
            }
        )


__all__ = ["MAX_TAGS", "RULES", "FieldRule", "InputValidator"]
