"""HTTP routes for submitting executions and following their progress."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

import runwatch
from runwatch.domain import ActiveExecution, ExecutionId, ExecutionRequest, ResultReport, TestId
from runwatch.orchestration import ExecutionAlreadyActiveError, InvalidInputError
from runwatch.persistence import ExecutionNotFoundError, StoreUnavailableError

from .sse import event_stream

if TYPE_CHECKING:
    from runwatch.container import ServiceContainer


def _error(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": error, "message": message, **extra}, status_code=status_code)


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"Request body is not valid JSON: {exc}") from exc


def _invalid_request(exc: ValueError) -> JSONResponse:
    details = None
    if isinstance(exc, ValidationError):
        details = exc.errors(include_url=False, include_context=False)
    return _error(400, "invalid_request", str(exc), details=details)


def _encode_active(entries: tuple[ActiveExecution, ...]) -> list[dict[str, Any]]:
    return [entry.to_wire() for entry in entries]


def create_routes(container: ServiceContainer) -> list[Route]:
    """Create HTTP routes bound to a service container."""

    orchestrator = container.orchestrator
    broadcaster = container.broadcaster
    status_service = container.status_service
    recorder = container.recorder

    async def health(request: Request) -> JSONResponse:
        _ = request
        return JSONResponse(
            {
                "status": "healthy",
                "version": runwatch.__version__,
                "environment": container.settings.environment,
                "delivery": "local" if broadcaster.local_only else "shared",
                "activeExecutions": len(orchestrator.active_execution_ids),
                "subscribers": len(broadcaster.registry),
            }
        )

    async def submit(request: Request) -> Response:
        try:
            payload = ExecutionRequest.model_validate(await _read_json(request))
        except ValueError as exc:
            return _invalid_request(exc)
        try:
            receipt = await orchestrator.submit(payload)
        except InvalidInputError as exc:
            return _error(400, "invalid_input", exc.reason, field=exc.field)
        except ExecutionAlreadyActiveError as exc:
            return _error(409, "already_active", str(exc), executionId=exc.execution_id)
        except StoreUnavailableError as exc:
            return _error(503, "store_unavailable", str(exc))
        return JSONResponse(receipt.to_wire(), status_code=202)

    async def status(request: Request) -> Response:
        execution_id = ExecutionId(request.path_params["execution_id"])
        snapshot = await status_service.get_status(execution_id)
        if snapshot is None:
            return _error(404, "not_found", f"Execution {execution_id} not found")
        return JSONResponse(snapshot.to_wire())

    async def live(request: Request) -> Response:
        execution_id = ExecutionId(request.path_params["execution_id"])
        subscription = await broadcaster.subscribe(execution_id)
        if subscription.pending == 0:
            broadcaster.unsubscribe(subscription)
            return _error(404, "not_found", f"Execution {execution_id} not found")
        return event_stream(broadcaster, subscription, "status", lambda s: s.to_wire())

    async def active_live(request: Request) -> Response:
        _ = request
        subscription = await broadcaster.subscribe_active()
        return event_stream(broadcaster, subscription, "active-executions", _encode_active)

    async def record_result(request: Request) -> Response:
        execution_id = ExecutionId(request.path_params["execution_id"])
        try:
            report = ResultReport.model_validate(await _read_json(request))
        except ValueError as exc:
            return _invalid_request(exc)
        try:
            result = await recorder.record_result(
                execution_id,
                TestId(report.test_id),
                report.test_name,
                report.status,
                report.start_time,
                report.end_time,
            )
        except ExecutionNotFoundError as exc:
            return _error(404, "not_found", str(exc))
        except StoreUnavailableError as exc:
            return _error(503, "store_unavailable", str(exc))
        return JSONResponse(
            {
                "executionId": result.execution_id,
                "testId": result.test_id,
                "status": result.status.value,
            }
        )

    return [
        Route("/health", health, methods=["GET"]),
        Route("/api/v1/executions", submit, methods=["POST"]),
        Route("/api/v1/executions/active/live", active_live, methods=["GET"]),
        Route("/api/v1/executions/{execution_id}/status", status, methods=["GET"]),
        Route("/api/v1/executions/{execution_id}/live", live, methods=["GET"]),
        Route("/api/v1/executions/{execution_id}/results", record_result, methods=["POST"]),
    ]


__all__ = ["create_routes"]
