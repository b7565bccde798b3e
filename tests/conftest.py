"""Pytest configuration helpers."""

from __future__ import annotations

from typing import Iterator

import pytest

from lazycache.cache import Cache, reset_cache
from lazycache.config import get_settings


class FakeClock:
    """Manually advanced time source for timeout policies."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_cache_state() -> Iterator[None]:
    """Give every test a fresh process-wide cache and freshly read settings."""
    reset_cache()
    get_settings.cache_clear()
    try:
        yield
    finally:
        reset_cache()
        get_settings.cache_clear()


@pytest.fixture
def cache() -> Cache:
    """Create an independent cache instance."""
    return Cache()


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at a fixed instant."""
    return FakeClock()
