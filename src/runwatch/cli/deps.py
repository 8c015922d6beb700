"""Shared CLI dependency helpers."""

from __future__ import annotations

import logging
from functools import lru_cache

from runwatch.config import AppSettings, load_env_file
from runwatch.container import ServiceContainer, build_container

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return settings from the environment, after loading ``.env`` if present."""

    load_env_file()
    return AppSettings.from_env()


@lru_cache(maxsize=1)
def get_container() -> ServiceContainer:
    """Return a cached service container for CLI commands."""

    return build_container(get_settings())


def reset_container() -> None:
    """Clear cached settings and container (useful for tests)."""

    get_container.cache_clear()
    get_settings.cache_clear()
