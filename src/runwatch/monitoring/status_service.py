"""Read side of live monitoring, with a last-good fallback."""

from __future__ import annotations

import logging
from collections import OrderedDict

from runwatch.domain import ActiveExecution, ExecutionId, ExecutionStatusSnapshot
from runwatch.persistence import PersistenceAdapter, StoreUnavailableError

from .aggregator import build_active_entry, build_snapshot


class StatusService:
    """Computes snapshots from the store.

    When the store is unreachable the most recent snapshot computed for an
    execution is returned instead, or ``None`` when none was ever computed.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        *,
        cache_size: int = 1024,
        logger: logging.Logger | None = None,
    ) -> None:
        self._adapter = adapter
        self._cache_size = cache_size
        self._last_good: OrderedDict[ExecutionId, ExecutionStatusSnapshot] = OrderedDict()
        self._last_active: tuple[ActiveExecution, ...] = ()
        self._logger = logger or logging.getLogger(__name__)

    async def get_status(self, execution_id: ExecutionId) -> ExecutionStatusSnapshot | None:
        try:
            execution = await self._adapter.load_execution(execution_id)
        except StoreUnavailableError as exc:
            cached = self._last_good.get(execution_id)
            self._logger.warning(
                "Store unavailable while reading %s (%s); serving %s",
                execution_id,
                exc,
                "cached snapshot" if cached is not None else "nothing",
            )
            return cached
        if execution is None:
            self._last_good.pop(execution_id, None)
            return None
        snapshot = build_snapshot(execution)
        self._remember(snapshot)
        return snapshot

    async def list_active(self) -> tuple[ActiveExecution, ...]:
        try:
            executions = await self._adapter.list_running()
        except StoreUnavailableError as exc:
            self._logger.warning("Store unavailable while listing active executions: %s", exc)
            return self._last_active
        self._last_active = tuple(build_active_entry(execution) for execution in executions)
        return self._last_active

    def forget(self, execution_id: ExecutionId) -> None:
        self._last_good.pop(execution_id, None)

    def _remember(self, snapshot: ExecutionStatusSnapshot) -> None:
        self._last_good[snapshot.execution_id] = snapshot
        self._last_good.move_to_end(snapshot.execution_id)
        while len(self._last_good) > self._cache_size:
            self._last_good.popitem(last=False)


__all__ = ["StatusService"]
