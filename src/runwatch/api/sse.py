"""Server-sent event framing for live subscriptions."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from typing import Any

from starlette.responses import StreamingResponse

from runwatch.monitoring import Broadcaster, Subscription

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


async def _frames(
    broadcaster: Broadcaster,
    subscription: Subscription[Any],
    event: str,
    encode: Callable[[Any], Any],
) -> AsyncIterator[str]:
    try:
        async for message in subscription:
            yield format_event(event, encode(message))
    finally:
        broadcaster.unsubscribe(subscription)


def event_stream(
    broadcaster: Broadcaster,
    subscription: Subscription[Any],
    event: str,
    encode: Callable[[Any], Any],
) -> StreamingResponse:
    return StreamingResponse(
        _frames(broadcaster, subscription, event, encode),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


__all__ = ["event_stream", "format_event"]
