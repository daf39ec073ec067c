"""Shared pytest fixtures for queue runner tests."""

from __future__ import annotations

from typing import Iterator

import pytest

from queue_runner.config import reset_settings_cache
from queue_runner.metrics import QueueMetrics


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics(fake_clock: FakeClock) -> QueueMetrics:
    """A registry with its own collector registry and a fake clock."""

    return QueueMetrics(clock=fake_clock)
