"""Lightweight application configuration loader."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw or raw.lower() == "null":
        return None
    return raw


def _active_environment() -> str:
    explicit = _env_str("RUNWATCH_ENV")
    if explicit is not None:
        return explicit
    profiles = _env_str("RUNWATCH_PROFILE")
    if profiles is not None:
        return profiles.split(",")[0].strip()
    return "dev"


def load_env_file(path: Path | None = None) -> bool:
    """Load a ``.env`` file without overriding variables already set."""

    target = path or Path.cwd() / ".env"
    if not target.exists():
        return False
    return load_dotenv(target, override=False)


@dataclass(frozen=True)
class DiscoverySettings:
    """Inputs for locating the durable store when no URL is configured."""

    database_url: str | None = None
    host: str = "localhost"
    primary_port: int = 5433
    secondary_port: int = 5432
    database_name: str = "runwatch"
    username: str | None = None
    password: str | None = None
    dev_container: str = "runwatch-db"
    prod_container: str = "runwatch-db-prod"
    url_template: str = "postgresql+asyncpg://{credentials}{host}:{port}/{database}"
    probe_timeout_seconds: float = 0.1

    @classmethod
    def from_env(cls) -> DiscoverySettings:
        return cls(
            database_url=_env_str("RUNWATCH_DATABASE_URL"),
            host=os.getenv("RUNWATCH_DB_HOST", cls.host),
            primary_port=_env_int("RUNWATCH_DB_PRIMARY_PORT", cls.primary_port),
            secondary_port=_env_int("RUNWATCH_DB_SECONDARY_PORT", cls.secondary_port),
            database_name=os.getenv("RUNWATCH_DB_NAME", cls.database_name),
            username=_env_str("RUNWATCH_DB_USERNAME"),
            password=_env_str("RUNWATCH_DB_PASSWORD"),
            dev_container=os.getenv("RUNWATCH_DEV_CONTAINER", cls.dev_container),
            prod_container=os.getenv("RUNWATCH_PROD_CONTAINER", cls.prod_container),
            url_template=os.getenv("RUNWATCH_DB_URL_TEMPLATE", cls.url_template),
            probe_timeout_seconds=_env_float(
                "RUNWATCH_PROBE_TIMEOUT_SECONDS", cls.probe_timeout_seconds
            ),
        )


@dataclass(frozen=True)
class AppSettings:
    """Immutable configuration sourced from environment variables."""

    environment: str = "dev"
    discovery: DiscoverySettings = field(default_factory=DiscoverySettings)
    redis_url: str | None = None
    updates_channel: str = "runwatch:execution:updates"
    runner_command: tuple[str, ...] = ("./mvnw", "test")
    runner_workdir: Path | None = None
    execution_tick_seconds: float = 1.0
    active_tick_seconds: float = 5.0
    subscriber_queue_size: int = 32
    recording_concurrency: int = 8
    public_base_url: str = ""
    host: str = "127.0.0.1"
    port: int = 8080
    enable_pubsub: bool = True

    @property
    def database_url(self) -> str | None:
        return self.discovery.database_url

    @classmethod
    def from_env(cls) -> AppSettings:
        runner_raw = _env_str("RUNWATCH_RUNNER_COMMAND")
        workdir_raw = _env_str("RUNWATCH_RUNNER_WORKDIR")
        return cls(
            environment=_active_environment(),
            discovery=DiscoverySettings.from_env(),
            redis_url=_env_str("RUNWATCH_REDIS_URL"),
            updates_channel=os.getenv("RUNWATCH_UPDATES_CHANNEL", cls.updates_channel),
            runner_command=tuple(shlex.split(runner_raw)) if runner_raw else cls.runner_command,
            runner_workdir=Path(workdir_raw) if workdir_raw else None,
            execution_tick_seconds=_env_float(
                "RUNWATCH_EXECUTION_TICK_SECONDS", cls.execution_tick_seconds
            ),
            active_tick_seconds=_env_float("RUNWATCH_ACTIVE_TICK_SECONDS", cls.active_tick_seconds),
            subscriber_queue_size=_env_int(
                "RUNWATCH_SUBSCRIBER_QUEUE_SIZE", cls.subscriber_queue_size
            ),
            recording_concurrency=_env_int(
                "RUNWATCH_RECORDING_CONCURRENCY", cls.recording_concurrency
            ),
            public_base_url=os.getenv("RUNWATCH_PUBLIC_BASE_URL", cls.public_base_url),
            host=os.getenv("RUNWATCH_HOST", cls.host),
            port=_env_int("RUNWATCH_PORT", cls.port),
            enable_pubsub=_env_bool("RUNWATCH_ENABLE_PUBSUB", cls.enable_pubsub),
        )


__all__ = ["AppSettings", "DiscoverySettings", "load_env_file"]
