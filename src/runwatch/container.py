"""Service container wiring application components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from runwatch.config import AppSettings
from runwatch.discovery import EndpointResolver
from runwatch.monitoring import (
    Broadcaster,
    InMemoryPubSub,
    PubSubBus,
    RedisPubSub,
    StatusService,
    SubscriberRegistry,
)
from runwatch.orchestration import ExecutionOrchestrator, ResultRecorder
from runwatch.persistence import PersistenceAdapter, UnitOfWorkFactory
from runwatch.persistence.sql import create_sql_unit_of_work_factory
from runwatch.runtime import AsyncioProcessLauncher, ProcessLauncher
from runwatch.utils import redact_url

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    """Aggregates the services of one runwatch instance."""

    settings: AppSettings
    database_url: str | None
    unit_of_work_factory: UnitOfWorkFactory
    adapter: PersistenceAdapter
    status_service: StatusService
    broadcaster: Broadcaster
    orchestrator: ExecutionOrchestrator
    recorder: ResultRecorder
    bus: PubSubBus | None


def _ensure_sqlite_directory(database_url: str) -> None:
    if not database_url.startswith("sqlite"):
        return
    try:
        _, path = database_url.split(":///", maxsplit=1)
    except ValueError:
        return
    if not path or path == ":memory:":
        return
    db_path = Path(path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_bus(settings: AppSettings) -> PubSubBus | None:
    if not settings.enable_pubsub:
        return None
    if settings.redis_url:
        logger.info("Using shared update channel at %s", redact_url(settings.redis_url))
        return RedisPubSub(settings.redis_url, settings.updates_channel)
    return InMemoryPubSub()


def build_container(
    settings: AppSettings | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    bus: PubSubBus | None = None,
    launcher: ProcessLauncher | None = None,
) -> ServiceContainer:
    """Construct the primary service container.

    Without an explicit unit of work factory the store endpoint is resolved
    through discovery, which raises ``NoEndpointFoundError`` when nothing answers.
    """

    resolved_settings = settings or AppSettings.from_env()

    database_url: str | None = None
    if unit_of_work_factory is None:
        database_url = EndpointResolver(resolved_settings.discovery).resolve(
            resolved_settings.environment
        )
        _ensure_sqlite_directory(database_url)
        unit_of_work_factory = create_sql_unit_of_work_factory(database_url)

    adapter = PersistenceAdapter(unit_of_work_factory)
    status_service = StatusService(adapter)
    resolved_bus = bus if bus is not None else _build_bus(resolved_settings)
    broadcaster = Broadcaster(
        status_service,
        SubscriberRegistry(queue_size=resolved_settings.subscriber_queue_size),
        bus=resolved_bus,
        execution_interval=resolved_settings.execution_tick_seconds,
        active_interval=resolved_settings.active_tick_seconds,
    )
    orchestrator = ExecutionOrchestrator(
        adapter,
        launcher or AsyncioProcessLauncher(),
        notifier=broadcaster,
        runner_command=resolved_settings.runner_command,
        runner_workdir=resolved_settings.runner_workdir,
        public_base_url=resolved_settings.public_base_url,
        logger=logger,
    )
    recorder = ResultRecorder(
        adapter,
        notifier=broadcaster,
        concurrency=resolved_settings.recording_concurrency,
    )

    return ServiceContainer(
        settings=resolved_settings,
        database_url=database_url,
        unit_of_work_factory=unit_of_work_factory,
        adapter=adapter,
        status_service=status_service,
        broadcaster=broadcaster,
        orchestrator=orchestrator,
        recorder=recorder,
        bus=resolved_bus,
    )


__all__ = ["ServiceContainer", "build_container"]
