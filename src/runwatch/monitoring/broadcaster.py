"""Fan-out of live execution status, locally and across instances."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from runwatch.domain import (
    EXECUTION_STATUSES,
    ExecutionId,
    ExecutionStatusSnapshot,
    ExecutionUpdate,
    TestStatus,
)

from .exceptions import PubSubUnavailableError
from .pubsub import PubSubBus, UpdateStream
from .registry import ActiveList, SubscriberRegistry, Subscription
from .status_service import StatusService


class Broadcaster:
    """Pushes snapshots to subscribers on a schedule and on change notices.

    Writers call :meth:`notify`, which publishes a change notice on the shared
    channel. Every instance consumes that channel, re-reads status from the
    store and pushes to its own subscribers only. When the channel cannot be
    reached the broadcaster keeps working for local subscribers.
    """

    def __init__(
        self,
        status_service: StatusService,
        registry: SubscriberRegistry,
        *,
        bus: PubSubBus | None = None,
        execution_interval: float = 1.0,
        active_interval: float = 5.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._status = status_service
        self._registry = registry
        self._bus = bus
        self._execution_interval = execution_interval
        self._active_interval = active_interval
        self._logger = logger or logging.getLogger(__name__)
        self._stream: UpdateStream | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._local_only = bus is None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def local_only(self) -> bool:
        return self._local_only

    @property
    def registry(self) -> SubscriberRegistry:
        return self._registry

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self._bus is not None:
            try:
                self._stream = await self._bus.subscribe()
            except PubSubUnavailableError as exc:
                self._logger.warning(
                    "Update channel unavailable (%s); delivering to local subscribers only", exc
                )
                self._local_only = True
            else:
                self._local_only = False
                self._tasks.append(asyncio.create_task(self._relay(self._stream)))
        self._tasks.append(
            asyncio.create_task(self._every(self._execution_interval, self.tick_executions))
        )
        self._tasks.append(
            asyncio.create_task(self._every(self._active_interval, self.tick_active))
        )
        self._logger.info(
            "Broadcaster started (execution tick %.1fs, active tick %.1fs, %s)",
            self._execution_interval,
            self._active_interval,
            "local only" if self._local_only else "shared channel",
        )

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self._stream is not None:
            await self._stream.close()
            self._stream = None
        self._registry.close_all()
        self._logger.info("Broadcaster stopped")

    async def subscribe(self, execution_id: ExecutionId) -> Subscription[ExecutionStatusSnapshot]:
        """Register a per-execution subscriber and hand it the current snapshot."""

        subscription = self._registry.add(execution_id)
        snapshot = await self._status.get_status(execution_id)
        if snapshot is not None:
            subscription.offer(snapshot)
        return subscription

    async def subscribe_active(self) -> Subscription[ActiveList]:
        subscription = self._registry.add_active()
        entries = await self._status.list_active()
        subscription.offer(entries)
        return subscription

    def unsubscribe(
        self,
        subscription: Subscription[ExecutionStatusSnapshot] | Subscription[ActiveList],
    ) -> None:
        self._registry.remove(subscription)

    async def tick_executions(self) -> None:
        for execution_id in self._registry.execution_ids():
            await self._push_execution(execution_id)

    async def tick_active(self) -> None:
        if self._registry.has_active_subscribers():
            await self._push_active()

    async def notify(self, execution_id: ExecutionId, status: TestStatus) -> None:
        """Announce that ``execution_id`` changed; never raises on delivery problems."""

        update = ExecutionUpdate(execution_id=execution_id, status=status)
        if self._bus is not None and not self._local_only:
            try:
                await self._bus.publish(update)
            except PubSubUnavailableError as exc:
                self._logger.warning(
                    "Publish of %s failed (%s); pushing locally", execution_id, exc
                )
            else:
                return
        await self._push_update(update)

    async def _push_update(self, update: ExecutionUpdate) -> None:
        await self._push_execution(update.execution_id)
        if update.status in EXECUTION_STATUSES:
            await self._push_active()

    async def _push_execution(self, execution_id: ExecutionId) -> None:
        if not self._registry.subscribers_for(execution_id):
            return
        snapshot = await self._status.get_status(execution_id)
        if snapshot is not None:
            self._registry.deliver(execution_id, snapshot)

    async def _push_active(self) -> None:
        if not self._registry.has_active_subscribers():
            return
        self._registry.deliver_active(await self._status.list_active())

    async def _relay(self, stream: UpdateStream) -> None:
        try:
            async for update in stream:
                try:
                    await self._push_update(update)
                except Exception:
                    self._logger.exception("Failed to relay update for %s", update.execution_id)
        except PubSubUnavailableError as exc:
            self._logger.warning("Update channel lost (%s); switching to local delivery", exc)
            self._local_only = True

    async def _every(self, interval: float, tick: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await tick()
            except Exception:
                self._logger.exception("Broadcaster tick failed")


__all__ = ["Broadcaster"]
