"""Typer CLI wiring runwatch services."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Any

import typer
import uvicorn

from runwatch.api import create_app
from runwatch.discovery import EndpointResolver, NoEndpointFoundError
from runwatch.domain import (
    ExecutionId,
    ExecutionRequest,
    GrepFilter,
    IndividualTestFilter,
    SuiteFilter,
    TagFilter,
    TestFilter,
    TestId,
    TestStatus,
)
from runwatch.orchestration import ExecutionAlreadyActiveError, InvalidInputError
from runwatch.persistence import ExecutionNotFoundError, StoreUnavailableError
from runwatch.utils import parse_timestamp, redact_url, utc_now

from .deps import configure_logging, get_container, get_settings

app = typer.Typer(help="runwatch command-line interface")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _parse_status(value: str) -> TestStatus:
    try:
        return TestStatus(value.strip().upper())
    except ValueError as exc:
        choices = ", ".join(status.value for status in TestStatus)
        raise typer.BadParameter(f"status must be one of {choices}") from exc


def _parse_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise typer.BadParameter(f"'{value}' is not an ISO-8601 timestamp") from exc


def _parse_parameters(values: list[str]) -> dict[str, str]:
    parameters: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep:
            raise typer.BadParameter(f"parameter '{item}' must look like KEY=VALUE")
        parameters[key] = value
    return parameters


def _build_selection(
    test_class: str | None,
    test_method: str | None,
    tags: list[str],
    grep: str | None,
    suite: str | None,
) -> TestFilter:
    given = [
        flag
        for flag, present in (
            ("--test-class", test_class is not None),
            ("--tag", bool(tags)),
            ("--grep", grep is not None),
            ("--suite", suite is not None),
        )
        if present
    ]
    if len(given) != 1:
        raise typer.BadParameter("choose exactly one of --test-class, --tag, --grep or --suite")
    if test_method is not None and test_class is None:
        raise typer.BadParameter("--test-method requires --test-class")
    if test_class is not None:
        return IndividualTestFilter(test_class=test_class, test_method=test_method)
    if tags:
        return TagFilter(tags=tuple(tags))
    if grep is not None:
        return GrepFilter(pattern=grep)
    assert suite is not None
    return SuiteFilter(suite_name=suite)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Coordinate test runner executions and follow their progress."""

    configure_logging(log_level)


@app.command("show-settings")
def show_settings() -> None:
    """Print the resolved application settings."""

    settings = get_settings()
    database_url = settings.database_url
    typer.echo("Environment:\t" + settings.environment)
    typer.echo("Database URL:\t" + (redact_url(database_url) if database_url else "<discovered>"))
    typer.echo("Redis URL:\t" + (redact_url(settings.redis_url) if settings.redis_url else "-"))
    typer.echo("Channel:\t" + settings.updates_channel)
    typer.echo("Runner:\t\t" + " ".join(settings.runner_command))


@app.command("resolve-endpoint")
def resolve_endpoint(
    environment: str | None = typer.Option(None, help="Environment tag to resolve for"),
) -> None:
    """Locate the durable store the way the server would."""

    settings = get_settings()
    resolver = EndpointResolver(settings.discovery)
    try:
        url = resolver.resolve(environment or settings.environment)
    except NoEndpointFoundError as exc:
        typer.echo(exc.diagnostics(), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(redact_url(url))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, help="Bind address"),
    port: int | None = typer.Option(None, help="Bind port"),
) -> None:
    """Run the HTTP server."""

    container = get_container()
    settings = container.settings
    uvicorn.run(
        create_app(container),
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command("run")
def run(
    test_class: str | None = typer.Option(None, help="Test class to run"),
    test_method: str | None = typer.Option(None, help="Single method of --test-class"),
    tag: list[str] = typer.Option([], "--tag", help="Tag to include (repeatable)"),
    grep: str | None = typer.Option(None, help="Wildcard pattern on test class names"),
    suite: str | None = typer.Option(None, help="Named test suite"),
    environment: str = typer.Option("dev", help="Environment tag"),
    execution_id: str | None = typer.Option(None, help="Explicit execution id"),
    param: list[str] = typer.Option([], "--param", help="Extra runner property KEY=VALUE"),
) -> None:
    """Submit an execution and wait for its final status."""

    selection = _build_selection(test_class, test_method, tag, grep, suite)
    request = ExecutionRequest(
        selection=selection,
        environment=environment,
        execution_id=execution_id,
        parameters=_parse_parameters(param),
    )
    container = get_container()

    async def _run() -> TestStatus | None:
        orchestrator = container.orchestrator
        receipt = await orchestrator.submit(request)
        _echo_json(receipt.to_wire())
        return await orchestrator.wait(receipt.execution_id)

    try:
        final_status = asyncio.run(_run())
    except InvalidInputError as exc:
        typer.echo(f"Invalid input: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except ExecutionAlreadyActiveError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    if final_status is None:
        return
    typer.echo(f"Final status: {final_status}")
    if final_status is not TestStatus.PASSED:
        raise typer.Exit(code=1)


@app.command("status")
def status(execution_id: str) -> None:
    """Print the aggregated status of an execution."""

    container = get_container()
    snapshot = asyncio.run(container.status_service.get_status(ExecutionId(execution_id)))
    if snapshot is None:
        typer.echo(f"Execution {execution_id} not found", err=True)
        raise typer.Exit(code=1)
    _echo_json(snapshot.to_wire())


@app.command("record-result")
def record_result(
    execution_id: str,
    test_id: str,
    name: str | None = typer.Option(None, help="Human readable test name"),
    status_value: str = typer.Option(..., "--status", help="Result status"),
    start: str | None = typer.Option(None, help="ISO-8601 start time"),
    end: str | None = typer.Option(None, help="ISO-8601 end time"),
) -> None:
    """Record one test completion, as the runner's recording hook would."""

    result_status = _parse_status(status_value)
    started = _parse_time(start)
    ended = _parse_time(end)
    container = get_container()

    async def _record() -> None:
        await container.recorder.record_result(
            ExecutionId(execution_id),
            TestId(test_id),
            name or test_id,
            result_status,
            started or utc_now(),
            ended,
        )

    try:
        asyncio.run(_record())
    except ExecutionNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    except StoreUnavailableError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Recorded {test_id} as {result_status} for execution {execution_id}")


@app.command("purge")
def purge(execution_id: str) -> None:
    """Delete an execution and all of its results."""

    container = get_container()
    deleted = asyncio.run(container.adapter.delete_execution(ExecutionId(execution_id)))
    if not deleted:
        typer.echo(f"Execution {execution_id} not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted execution {execution_id}")


__all__ = ["app"]
