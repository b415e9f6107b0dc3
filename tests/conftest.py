"""Shared test fixtures for all test modules."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from perfkeeper.adapters.storage.in_memory import InMemoryKeyValueStore
from perfkeeper.core.config import RecorderConfig
from perfkeeper.core.models import RequestRecord, timestamp_fields
from perfkeeper.core.recorder import Recorder
from perfkeeper.core.scanner import KeyspaceScanner

FIXED_NOW = datetime(2026, 2, 4, 12, 30, 15, tzinfo=UTC)


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed UTC instant used by date-scoped tests."""
    return FIXED_NOW


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Empty in-memory key-value store with a clock pinned to FIXED_NOW."""
    return InMemoryKeyValueStore(clock=FIXED_NOW.timestamp)


@pytest.fixture
def config() -> RecorderConfig:
    """Default recorder configuration with a 24 hour retention."""
    return RecorderConfig(retention=timedelta(hours=24))


@pytest.fixture
def recorder(store: InMemoryKeyValueStore, config: RecorderConfig) -> Recorder:
    return Recorder(store, config)


@pytest.fixture
def scanner(store: InMemoryKeyValueStore, config: RecorderConfig) -> KeyspaceScanner:
    return KeyspaceScanner(store, config)


@pytest.fixture
def make_request() -> Callable[..., RequestRecord]:
    """Factory fixture for request records at a given instant."""

    def _make(at: datetime = FIXED_NOW, **overrides: Any) -> RequestRecord:
        values: dict[str, Any] = {
            **timestamp_fields(at),
            "controller": "HomeController",
            "action": "index",
            "format": "html",
            "status": 200,
            "method": "GET",
            "path": "/",
            "request_id": f"req{int(at.timestamp())}",
            "duration": 12.5,
        }
        values.update(overrides)
        return RequestRecord(**values)

    return _make
