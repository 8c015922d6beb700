"""Async SQLAlchemy unit of work implementation."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Callable
from types import TracebackType
from typing import Any

from sqlalchemy import Engine, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from runwatch.persistence.interfaces import UnitOfWork

from .migrations import apply_migrations
from .repositories import SqlExecutionRepository, SqlTestResultRepository

_migration_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = (
    weakref.WeakKeyDictionary()
)
_migrated_engines: weakref.WeakSet[Engine] = weakref.WeakSet()


def _migration_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _migration_locks.get(loop)
    if lock is None:
        lock = _migration_locks[loop] = asyncio.Lock()
    return lock


async def _ensure_migrated(engine: AsyncEngine) -> None:
    async with _migration_lock():
        if engine.sync_engine in _migrated_engines:
            return
        await apply_migrations(engine)
        _migrated_engines.add(engine.sync_engine)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SqlUnitOfWork(UnitOfWork):
    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> SqlUnitOfWork:
        await _ensure_migrated(self._engine)
        self._session = self._session_factory()
        self.execution_repository = SqlExecutionRepository(self._session)
        self.result_repository = SqlTestResultRepository(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._session is None:
            return
        try:
            if exc_type is not None:
                await self._session.rollback()
            else:
                await self._session.commit()
        finally:
            await self._session.close()
            self._session = None

    async def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("UnitOfWork session not started")
        await self._session.commit()

    async def rollback(self) -> None:
        if self._session is None:
            raise RuntimeError("UnitOfWork session not started")
        await self._session.rollback()


def create_sql_unit_of_work_factory(database_url: str) -> Callable[[], SqlUnitOfWork]:
    engine = create_async_engine(database_url, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    def factory() -> SqlUnitOfWork:
        return SqlUnitOfWork(engine, session_factory)

    return factory


__all__ = ["SqlUnitOfWork", "create_sql_unit_of_work_factory"]
