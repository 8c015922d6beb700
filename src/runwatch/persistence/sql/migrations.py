"""Versioned schema migrations for the execution store."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from .models import Base

Migration = Callable[[AsyncConnection], Awaitable[None]]

VERSION_TABLE = "runwatch_schema_migrations"

logger = logging.getLogger(__name__)


async def _create_tables(conn: AsyncConnection) -> None:
    await conn.run_sync(Base.metadata.create_all)


async def _index_result_status(conn: AsyncConnection) -> None:
    await conn.execute(
        text(
            "CREATE INDEX IF NOT EXISTS ix_test_results_execution_status "
            "ON test_results (execution_id, status)"
        )
    )


MIGRATIONS: tuple[tuple[int, Migration], ...] = (
    (1, _create_tables),
    (2, _index_result_status),
)


async def _current_version(conn: AsyncConnection) -> int:
    await conn.execute(
        text(f"CREATE TABLE IF NOT EXISTS {VERSION_TABLE} (version INTEGER PRIMARY KEY)")
    )
    result = await conn.execute(text(f"SELECT MAX(version) FROM {VERSION_TABLE}"))
    return result.scalar() or 0


async def apply_migrations(engine: AsyncEngine) -> int:
    """Apply pending migrations in one transaction; returns the resulting version."""

    async with engine.begin() as conn:
        version = await _current_version(conn)
        for target, migration in MIGRATIONS:
            if target <= version:
                continue
            await migration(conn)
            await conn.execute(
                text(f"INSERT INTO {VERSION_TABLE} (version) VALUES (:version)"),
                {"version": target},
            )
            logger.info("Applied schema migration %s", target)
            version = target
    return version


__all__ = ["MIGRATIONS", "apply_migrations"]
