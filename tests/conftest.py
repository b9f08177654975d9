"""Pytest configuration and shared fixtures for asyncval tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from asyncval import WorkerPoolContext, clear_log_hooks, configure_logging, init
from asyncval._config import reset_config


@pytest.fixture(autouse=True)
def setup_runtime(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from an explicit, inline configuration."""
    for name in ('ASYNCVAL_CONTEXT', 'ASYNCVAL_WORKERS', 'ASYNCVAL_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    init(default_context='immediate', workers=1)
    yield
    reset_config()


@pytest.fixture
def pool() -> Iterator[WorkerPoolContext]:
    """A private single-worker pool, closed after the test."""
    with WorkerPoolContext(max_workers=1, name='test-worker') as ctx:
        yield ctx


@pytest.fixture
def log_events() -> Iterator[list[dict[str, Any]]]:
    """Capture structured log events emitted during the test."""
    from asyncval import add_log_hook

    events: list[dict[str, Any]] = []
    configure_logging(level='DEBUG', json_output=True)
    clear_log_hooks()
    add_log_hook(events.append)
    yield events
    clear_log_hooks()
