from __future__ import annotations

from pathlib import Path

from runwatch.domain import (
    ExecutionId,
    GrepFilter,
    IndividualTestFilter,
    SuiteFilter,
    TagFilter,
)
from runwatch.orchestration import build_invocation, parameter_arguments, plan_for


def test_individual_plan_with_and_without_method() -> None:
    with_method = plan_for(IndividualTestFilter(test_class="LoginTest", test_method="works"))
    assert with_method.arguments == ("-Dtest=LoginTest#works",)
    assert with_method.description == "Individual test: LoginTest.works"
    assert with_method.suite_name == "LoginTest"

    whole_class = plan_for(IndividualTestFilter(test_class="LoginTest"))
    assert whole_class.arguments == ("-Dtest=LoginTest",)
    assert whole_class.selectors == ("LoginTest",)


def test_tag_plan() -> None:
    plan = plan_for(TagFilter(tags=("smoke", "regression")))

    assert plan.suite_name == "tagged-tests-smoke-regression"
    assert plan.description == "Tests with tags: smoke, regression"
    assert plan.arguments == ("-Djunit.jupiter.includeTags=smoke|regression",)
    assert plan.selectors == ("@smoke", "@regression")


def test_grep_plan_sanitizes_suite_name() -> None:
    plan = plan_for(GrepFilter(pattern="*Login*"))

    assert plan.suite_name == "grep--Login-"
    assert plan.arguments == ("-Dtest=*Login*",)


def test_suite_plan() -> None:
    plan = plan_for(SuiteFilter(suite_name="Checkout"))

    assert plan.arguments == ("-Dtest=CheckoutTestSuite",)
    assert plan.selectors == ("CheckoutTestSuite",)


def test_parameter_arguments_skip_blank_and_unsafe_entries() -> None:
    arguments = parameter_arguments(
        {
            "browser": "chrome",
            "threads": " 4 ",
            "": "x",
            "empty": " ",
            "bad key": "1",
            "cmd": "a; rm -rf /",
            "pipe": "a|b",
            "tick": "`id`",
            "amp": "a&b",
        }
    )

    assert arguments == ("-Dbrowser=chrome", "-Dthreads=4")


def test_build_invocation_sets_command_and_environment(tmp_path: Path) -> None:
    plan = plan_for(SuiteFilter(suite_name="Api"))

    invocation = build_invocation(
        ("./mvnw", "test"),
        plan,
        execution_id=ExecutionId("exec-9"),
        environment="stage",
        parameters={"retries": "2"},
        cwd=tmp_path,
        base_env={"PATH": "/usr/bin"},
    )

    assert invocation.command == ("./mvnw", "test", "-Dtest=ApiTestSuite", "-Dretries=2")
    assert invocation.env == {
        "PATH": "/usr/bin",
        "RUNWATCH_EXECUTION_ID": "exec-9",
        "RUNWATCH_SUITE_NAME": "Api",
        "RUNWATCH_ENV": "stage",
    }
    assert invocation.cwd == tmp_path
    assert invocation.label == "exec-9"
