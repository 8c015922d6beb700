"""Starlette application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from starlette.applications import Starlette

from .routes import create_routes

if TYPE_CHECKING:
    from runwatch.container import ServiceContainer

logger = logging.getLogger(__name__)


def create_app(container: ServiceContainer) -> Starlette:
    """Create the HTTP application; the lifespan owns the broadcaster."""

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await container.broadcaster.start()
        try:
            yield
        finally:
            await container.orchestrator.shutdown()
            await container.broadcaster.stop()
            if container.bus is not None:
                await container.bus.close()
            logger.info("runwatch server stopped")

    return Starlette(routes=create_routes(container), lifespan=lifespan)


__all__ = ["create_app"]
