"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable so no .env file is loaded and pins
the limiter to the in-memory backend.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("LIMITER_BACKEND", "memory")
os.environ.setdefault("LIMITER_NAME", "test_limiter")
os.environ.setdefault("LOG_FORMAT", "json")

import pytest

from sliding_limiter.adapters.persistence.base import PersistenceRecord
from sliding_limiter.adapters.persistence.in_memory import InMemoryPersistenceStore
from sliding_limiter.adapters.timestamp.base import AbstractTimestampProvider
from sliding_limiter.core.rate_limit import reset_rate_limiter
from sliding_limiter.services.rate_limiter import RateLimiterConfiguration


class TimestampProviderMock(AbstractTimestampProvider):
    """Deterministic clock driven by the test."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def get_timestamp_seconds(self) -> float:
        return self.current

    def set_timestamp_seconds(self, seconds: float) -> None:
        self.current = seconds


class SpyPersistenceStore(InMemoryPersistenceStore):
    """In-memory store counting calls into the atomic update primitive."""

    def __init__(self) -> None:
        super().__init__()
        self.update_calls: list[str] = []

    def update_and_get(self, key, transform) -> PersistenceRecord:
        self.update_calls.append(key)
        return super().update_and_get(key, transform)

    def only_record(self) -> dict:
        """Return the raw shape of the single stored record."""
        keys = self.keys()
        assert len(keys) == 1, keys
        return self.snapshot(keys[0])


@pytest.fixture
def clock() -> TimestampProviderMock:
    return TimestampProviderMock()


@pytest.fixture
def store() -> SpyPersistenceStore:
    return SpyPersistenceStore()


@pytest.fixture
def sample_configuration() -> RateLimiterConfiguration:
    return RateLimiterConfiguration(
        name="rate_limiter_1",
        period_seconds=5 * 60,
        max_calls=1,
        debug=False,
    )


@pytest.fixture(autouse=True)
def _fresh_process_limiter():
    """Drop the cached HTTP limiter so tests never share recorded calls."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()
