from __future__ import annotations

import os
from pathlib import Path

import pytest

from runwatch.config import AppSettings, load_env_file


def test_from_env_reads_runwatch_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RUNWATCH_ENV", "stage")
    monkeypatch.setenv("RUNWATCH_DATABASE_URL", "sqlite+aiosqlite:///tmp/rw.db")
    monkeypatch.setenv("RUNWATCH_RUNNER_COMMAND", "mvn -q test")
    monkeypatch.setenv("RUNWATCH_SUBSCRIBER_QUEUE_SIZE", "4")
    monkeypatch.setenv("RUNWATCH_EXECUTION_TICK_SECONDS", "0.5")
    monkeypatch.setenv("RUNWATCH_ENABLE_PUBSUB", "false")
    monkeypatch.setenv("RUNWATCH_REDIS_URL", "null")

    settings = AppSettings.from_env()

    assert settings.environment == "stage"
    assert settings.database_url == "sqlite+aiosqlite:///tmp/rw.db"
    assert settings.runner_command == ("mvn", "-q", "test")
    assert settings.subscriber_queue_size == 4
    assert settings.execution_tick_seconds == 0.5
    assert settings.enable_pubsub is False
    assert settings.redis_url is None


def test_environment_falls_back_to_first_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RUNWATCH_ENV", raising=False)
    monkeypatch.setenv("RUNWATCH_PROFILE", "prod, metrics")

    assert AppSettings.from_env().environment == "prod"


def test_malformed_numbers_use_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RUNWATCH_PORT", "eighty")
    monkeypatch.setenv("RUNWATCH_ACTIVE_TICK_SECONDS", "")

    settings = AppSettings.from_env()

    assert settings.port == 8080
    assert settings.active_tick_seconds == 5.0


def test_load_env_file_keeps_existing_values(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("RUNWATCH_HOST=0.0.0.0\nRUNWATCH_UPDATES_CHANNEL=from-file\n")
    monkeypatch.setenv("RUNWATCH_HOST", "10.0.0.1")
    monkeypatch.delenv("RUNWATCH_UPDATES_CHANNEL", raising=False)

    assert load_env_file(env_file) is True
    assert os.environ["RUNWATCH_HOST"] == "10.0.0.1"
    assert os.environ["RUNWATCH_UPDATES_CHANNEL"] == "from-file"

    monkeypatch.delenv("RUNWATCH_UPDATES_CHANNEL")
    assert load_env_file(tmp_path / "missing.env") is False
