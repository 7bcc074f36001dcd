"""Unit tests for the Redis persistence store with a mocked client."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from sliding_limiter.adapters.persistence.base import PersistenceRecord
from sliding_limiter.adapters.persistence.redis_store import RedisPersistenceStore
from sliding_limiter.core.errors import PersistenceAppError
from sliding_limiter.services.rate_limiter import GenericRateLimiter, RateLimiterConfiguration


def _client_with_attempts(*stored_values: bytes | None) -> tuple[MagicMock, list[MagicMock]]:
    """Build a client whose transaction runs the callable once per stored value.

    Each value is what GET returns in that attempt, so several values model
    WATCH conflicts that make redis-py rerun the transaction.
    """
    pipes: list[MagicMock] = []
    for value in stored_values:
        pipe = MagicMock()
        pipe.get.return_value = value
        pipes.append(pipe)

    def _transaction(func, *watches, value_from_callable=False, **kwargs):
        result = None
        for pipe in pipes:
            result = func(pipe)
        return result if value_from_callable else []

    client = MagicMock()
    client.transaction.side_effect = _transaction
    return client, pipes


def test_update_watches_prefixed_key_and_writes_json() -> None:
    client, (pipe,) = _client_with_attempts(None)
    store = RedisPersistenceStore(client, key_prefix="rl:")

    result = store.update_and_get("api/user", lambda record: PersistenceRecord(u=[10.0]))

    assert result == PersistenceRecord(u=[10.0])
    args, kwargs = client.transaction.call_args
    assert args[1:] == ("rl:api/user",)
    assert kwargs["value_from_callable"] is True
    pipe.get.assert_called_once_with("rl:api/user")
    pipe.multi.assert_called_once_with()
    pipe.set.assert_called_once_with("rl:api/user", json.dumps({"u": [10.0]}), ex=None)


def test_update_passes_decoded_record_to_transform() -> None:
    client, _ = _client_with_attempts(b'{"u": [1.5, 2.5]}')
    store = RedisPersistenceStore(client)
    seen: list[PersistenceRecord | None] = []

    def _transform(record):
        seen.append(record)
        return record

    store.update_and_get("k", _transform)

    assert seen == [PersistenceRecord(u=[1.5, 2.5])]


def test_update_applies_key_ttl() -> None:
    client, (pipe,) = _client_with_attempts(None)
    store = RedisPersistenceStore(client, key_ttl_seconds=120)

    store.update_and_get("k", lambda _: PersistenceRecord(u=[]))

    assert pipe.set.call_args.kwargs["ex"] == 120


def test_retried_transaction_returns_last_attempt_to_limiter() -> None:
    client, pipes = _client_with_attempts('{"u": [101.0]}', '{"u": [101.0, 102.0]}')
    store = RedisPersistenceStore(client)

    class Clock:
        def get_timestamp_seconds(self) -> float:
            return 103.0

    limiter = GenericRateLimiter(
        RateLimiterConfiguration(name="api", period_seconds=10, max_calls=2),
        store,
        Clock(),
    )

    assert limiter.check_and_record("user") is False
    pipes[-1].set.assert_called_once_with(
        "sliding_limiter:api/user", json.dumps({"u": [101.0, 102.0]}), ex=None
    )


@pytest.mark.parametrize("exc", [RedisConnectionError("refused"), RedisTimeoutError("slow")])
def test_update_wraps_backend_errors(exc: Exception) -> None:
    client = MagicMock()
    client.transaction.side_effect = exc
    store = RedisPersistenceStore(client)

    with pytest.raises(PersistenceAppError) as exc_info:
        store.update_and_get("k", lambda record: PersistenceRecord(u=[]))

    assert exc_info.value.code == "persistence_update_failed"
    assert exc_info.value.__cause__ is exc


def test_transform_errors_are_not_wrapped() -> None:
    client, _ = _client_with_attempts(None)
    store = RedisPersistenceStore(client)

    def _boom(record):
        raise ValueError("bad transform")

    with pytest.raises(ValueError, match="bad transform"):
        store.update_and_get("k", _boom)


def test_get_returns_none_for_missing_key() -> None:
    client = MagicMock()
    client.get.return_value = None
    store = RedisPersistenceStore(client)

    assert store.get("k") is None
    client.get.assert_called_once_with("sliding_limiter:k")


def test_get_decodes_record() -> None:
    client = MagicMock()
    client.get.return_value = b'{"u": [3.0]}'
    store = RedisPersistenceStore(client)

    assert store.get("k") == PersistenceRecord(u=[3.0])


def test_get_wraps_backend_errors() -> None:
    client = MagicMock()
    client.get.side_effect = RedisConnectionError("refused")
    store = RedisPersistenceStore(client)

    with pytest.raises(PersistenceAppError) as exc_info:
        store.get("k")

    assert exc_info.value.code == "persistence_read_failed"


def test_limiter_propagates_backend_failure() -> None:
    client = MagicMock()
    client.transaction.side_effect = RedisConnectionError("refused")
    limiter = GenericRateLimiter(
        RateLimiterConfiguration(name="api", period_seconds=10, max_calls=2),
        RedisPersistenceStore(client),
        MagicMock(get_timestamp_seconds=MagicMock(return_value=1.0)),
    )

    with pytest.raises(PersistenceAppError):
        limiter.check_and_record("user")


CORRUPT_VALUES = [b"not json", b"[1, 2]", b'{"u": "abc"}', b'{"u": [null]}', b'{"u": 5}', b"\xff\xfe"]


@pytest.mark.parametrize("raw", CORRUPT_VALUES)
def test_get_reports_corrupt_record(raw: bytes) -> None:
    client = MagicMock()
    client.get.return_value = raw
    store = RedisPersistenceStore(client)

    with pytest.raises(PersistenceAppError) as exc_info:
        store.get("k")

    assert exc_info.value.code == "persistence_corrupt_record"
    assert exc_info.value.details == {"backend": "redis"}
    assert exc_info.value.__cause__ is not None


@pytest.mark.parametrize("raw", CORRUPT_VALUES)
def test_update_reports_corrupt_record_without_writing(raw: bytes) -> None:
    client, (pipe,) = _client_with_attempts(raw)
    store = RedisPersistenceStore(client)
    transform = MagicMock(return_value=PersistenceRecord(u=[1.0]))

    with pytest.raises(PersistenceAppError) as exc_info:
        store.update_and_get("k", transform)

    assert exc_info.value.code == "persistence_corrupt_record"
    transform.assert_not_called()
    pipe.set.assert_not_called()
