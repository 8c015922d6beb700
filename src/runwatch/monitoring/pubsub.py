"""Shared update channel connecting broadcaster instances."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

from pydantic import ValidationError
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from runwatch.domain import ExecutionUpdate

from .exceptions import PubSubUnavailableError

logger = logging.getLogger(__name__)


class UpdateStream(Protocol):
    """Stream of updates received from the shared channel."""

    def __aiter__(self) -> AsyncIterator[ExecutionUpdate]: ...

    async def close(self) -> None: ...


class PubSubBus(Protocol):
    """Publish/subscribe transport for :class:`ExecutionUpdate` messages."""

    async def publish(self, update: ExecutionUpdate) -> None: ...

    async def subscribe(self) -> UpdateStream: ...

    async def close(self) -> None: ...


class _InMemoryStream:
    def __init__(self, hub: InMemoryPubSub) -> None:
        self._hub = hub
        self._queue: asyncio.Queue[ExecutionUpdate | None] = asyncio.Queue()
        self._closed = False

    def push(self, update: ExecutionUpdate | None) -> None:
        if not self._closed:
            self._queue.put_nowait(update)

    async def __aiter__(self) -> AsyncIterator[ExecutionUpdate]:
        while True:
            update = await self._queue.get()
            if update is None:
                return
            yield update

    async def close(self) -> None:
        if self._closed:
            return
        self._hub.detach(self)
        self._queue.put_nowait(None)
        self._closed = True


class InMemoryPubSub:
    """In-process hub; several broadcasters sharing one instance see each other's updates."""

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.published: list[ExecutionUpdate] = []
        self._streams: set[_InMemoryStream] = set()

    async def publish(self, update: ExecutionUpdate) -> None:
        if not self.available:
            raise PubSubUnavailableError("in-memory channel is offline")
        self.published.append(update)
        for stream in list(self._streams):
            stream.push(update)

    async def subscribe(self) -> _InMemoryStream:
        if not self.available:
            raise PubSubUnavailableError("in-memory channel is offline")
        stream = _InMemoryStream(self)
        self._streams.add(stream)
        return stream

    def detach(self, stream: _InMemoryStream) -> None:
        self._streams.discard(stream)

    async def close(self) -> None:
        for stream in list(self._streams):
            await stream.close()


class _RedisStream:
    def __init__(self, pubsub: Any, channel: str) -> None:
        self._pubsub = pubsub
        self._channel = channel

    async def __aiter__(self) -> AsyncIterator[ExecutionUpdate]:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield ExecutionUpdate.model_validate_json(message["data"])
                except ValidationError:
                    logger.warning("Discarding malformed update on %s", self._channel)
        except RedisError as exc:
            raise PubSubUnavailableError(f"Lost subscription to {self._channel}: {exc}") from exc

    async def close(self) -> None:
        try:
            await self._pubsub.unsubscribe(self._channel)
        except RedisError as exc:
            logger.debug("Unsubscribe from %s failed: %s", self._channel, exc)
        await self._pubsub.aclose()


class RedisPubSub:
    """Redis channel transport built on ``redis.asyncio``."""

    def __init__(self, url: str, channel: str) -> None:
        self._url = url
        self._channel = channel
        self._client: aioredis.Redis | None = None

    def _redis(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.Redis.from_url(self._url)
        return self._client

    async def publish(self, update: ExecutionUpdate) -> None:
        payload = update.model_dump_json(by_alias=True)
        try:
            await self._redis().publish(self._channel, payload)
        except (RedisError, OSError) as exc:
            raise PubSubUnavailableError(f"Publish to {self._channel} failed: {exc}") from exc

    async def subscribe(self) -> _RedisStream:
        client = self._redis()
        pubsub = client.pubsub(ignore_subscribe_messages=True)
        try:
            await client.ping()
            await pubsub.subscribe(self._channel)
        except (RedisError, OSError) as exc:
            await pubsub.aclose()
            raise PubSubUnavailableError(f"Subscribe to {self._channel} failed: {exc}") from exc
        logger.info("Subscribed to update channel %s", self._channel)
        return _RedisStream(pubsub, self._channel)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["InMemoryPubSub", "PubSubBus", "RedisPubSub", "UpdateStream"]
