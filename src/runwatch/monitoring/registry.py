"""Process-local fan-out index of live subscribers."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Iterable
from typing import Generic, TypeVar

from runwatch.domain import ActiveExecution, ExecutionId, ExecutionStatusSnapshot

from .exceptions import DeliveryFailure

MessageT = TypeVar("MessageT")

ActiveList = tuple[ActiveExecution, ...]

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


class Subscription(Generic[MessageT]):
    """Bounded mailbox for one subscriber.

    Producers call :meth:`offer`, which never blocks. A subscriber that falls
    behind fills its queue and the next offer fails; the registry then drops it.
    """

    def __init__(self, execution_id: ExecutionId | None, *, maxsize: int = 32) -> None:
        self.id = next(_ids)
        self.execution_id = execution_id
        self._queue: asyncio.Queue[MessageT | None] = asyncio.Queue(maxsize=max(maxsize, 1))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, message: MessageT) -> None:
        if self._closed:
            raise DeliveryFailure(f"Subscription {self.id} is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as exc:
            raise DeliveryFailure(f"Subscription {self.id} is not keeping up") from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def get(self) -> MessageT:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        message = await self._queue.get()
        if message is None:
            raise StopAsyncIteration
        return message

    def __aiter__(self) -> AsyncIterator[MessageT]:
        return self

    async def __anext__(self) -> MessageT:
        return await self.get()

    def __repr__(self) -> str:
        scope = self.execution_id or "active"
        return f"Subscription(id={self.id}, scope={scope}, closed={self._closed})"


class SubscriberRegistry:
    """Per-execution and global subscriber sets, scoped to this process."""

    def __init__(self, *, queue_size: int = 32) -> None:
        self._queue_size = queue_size
        self._by_execution: dict[ExecutionId, set[Subscription[ExecutionStatusSnapshot]]] = {}
        self._active: set[Subscription[ActiveList]] = set()

    def add(self, execution_id: ExecutionId) -> Subscription[ExecutionStatusSnapshot]:
        subscription: Subscription[ExecutionStatusSnapshot] = Subscription(
            execution_id, maxsize=self._queue_size
        )
        self._by_execution.setdefault(execution_id, set()).add(subscription)
        return subscription

    def add_active(self) -> Subscription[ActiveList]:
        subscription: Subscription[ActiveList] = Subscription(None, maxsize=self._queue_size)
        self._active.add(subscription)
        return subscription

    def remove(
        self,
        subscription: Subscription[ExecutionStatusSnapshot] | Subscription[ActiveList],
    ) -> None:
        subscription.close()
        if subscription.execution_id is None:
            self._active.discard(subscription)  # type: ignore[arg-type]
            return
        subscribers = self._by_execution.get(subscription.execution_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)  # type: ignore[arg-type]
        if not subscribers:
            del self._by_execution[subscription.execution_id]

    def execution_ids(self) -> list[ExecutionId]:
        return list(self._by_execution)

    def subscribers_for(
        self, execution_id: ExecutionId
    ) -> tuple[Subscription[ExecutionStatusSnapshot], ...]:
        return tuple(self._by_execution.get(execution_id, ()))

    def active_subscribers(self) -> tuple[Subscription[ActiveList], ...]:
        return tuple(self._active)

    def has_active_subscribers(self) -> bool:
        return bool(self._active)

    def deliver(self, execution_id: ExecutionId, snapshot: ExecutionStatusSnapshot) -> int:
        """Push ``snapshot`` to every subscriber of ``execution_id``; returns deliveries."""

        return self._fan_out(self.subscribers_for(execution_id), snapshot)

    def deliver_active(self, entries: ActiveList) -> int:
        return self._fan_out(self.active_subscribers(), entries)

    def _fan_out(self, subscriptions: Iterable[Subscription[MessageT]], message: MessageT) -> int:
        delivered = 0
        for subscription in subscriptions:
            try:
                subscription.offer(message)
            except DeliveryFailure as exc:
                logger.debug("Dropping subscriber: %s", exc)
                self.remove(subscription)  # type: ignore[arg-type]
            else:
                delivered += 1
        return delivered

    def close_all(self) -> None:
        for subscribers in list(self._by_execution.values()):
            for subscription in list(subscribers):
                subscription.close()
        for active in list(self._active):
            active.close()
        self._by_execution.clear()
        self._active.clear()

    def __len__(self) -> int:
        return len(self._active) + sum(len(s) for s in self._by_execution.values())


__all__ = ["ActiveList", "SubscriberRegistry", "Subscription"]
