from __future__ import annotations

import asyncio
import socket
from pathlib import Path

import pytest

from runwatch.config import AppSettings, DiscoverySettings
from runwatch.container import build_container
from runwatch.discovery import NoEndpointFoundError
from runwatch.domain import ExecutionId
from runwatch.monitoring import InMemoryPubSub, RedisPubSub


def _settings(tmp_path: Path, **overrides: object) -> AppSettings:
    db_url = f"sqlite+aiosqlite:///{tmp_path/'nested'/'container.db'}"
    return AppSettings(
        environment="test",
        discovery=DiscoverySettings(database_url=db_url),
        **overrides,  # type: ignore[arg-type]
    )


def test_build_container_wires_sql_store(tmp_path: Path) -> None:
    container = build_container(_settings(tmp_path))

    assert (tmp_path / "nested").exists()
    assert container.database_url is not None
    assert isinstance(container.bus, InMemoryPubSub)

    async def _round_trip() -> bool:
        created = await container.adapter.ensure_execution(ExecutionId("exec-1"), "Api", "test")
        running = await container.adapter.list_running()
        return created and len(running) == 1

    assert asyncio.run(_round_trip()) is True


def test_build_container_selects_bus(tmp_path: Path) -> None:
    disabled = build_container(_settings(tmp_path, enable_pubsub=False))
    assert disabled.bus is None
    assert disabled.broadcaster.local_only

    shared = build_container(_settings(tmp_path, redis_url="redis://localhost:6379/0"))
    assert isinstance(shared.bus, RedisPubSub)


def test_build_container_requires_a_reachable_store() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = int(sock.getsockname()[1])
    settings = AppSettings(
        discovery=DiscoverySettings(
            host="127.0.0.1",
            primary_port=port,
            secondary_port=port,
            dev_container="runwatch-test-missing",
            prod_container="runwatch-test-missing-prod",
        )
    )

    with pytest.raises(NoEndpointFoundError):
        build_container(settings)
