"""Redis-backed persistence store.

Records are stored as JSON strings ({"u": [...]}) under a configurable key
prefix. Atomicity comes from an optimistic transaction: the key is WATCHed,
read, transformed and written inside MULTI/EXEC; redis-py reruns the whole
cycle when another client touches the key in between.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from sliding_limiter.adapters.persistence.base import (
    AbstractPersistenceStore,
    PersistenceRecord,
    RecordTransform,
)
from sliding_limiter.core.errors import PersistenceAppError

logger = logging.getLogger(__name__)


class RedisPersistenceStore(AbstractPersistenceStore):
    """Keyed record store on top of a shared Redis instance.

    Important:
        The transform may run several times for one update when concurrent
        writers cause the WATCH to fail, so it must be free of side effects
        other than recording its latest result.
    """

    def __init__(
        self,
        client: Redis,
        *,
        key_prefix: str = "sliding_limiter:",
        key_ttl_seconds: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Connected redis-py client.
            key_prefix: Prefix applied to every storage key.
            key_ttl_seconds: Optional expiry refreshed on every write, letting
                Redis drop records of qualifiers that went quiet.
        """
        self._client = client
        self._key_prefix = key_prefix
        self._key_ttl_seconds = key_ttl_seconds

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisPersistenceStore":
        return cls(Redis.from_url(url), **kwargs)

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    @staticmethod
    def _decode(raw: bytes | str | None) -> PersistenceRecord | None:
        if raw is None:
            return None
        try:
            return PersistenceRecord.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as exc:
            logger.error(
                "persistence.corrupt_record",
                extra={"backend": "redis", "error_type": type(exc).__name__},
            )
            raise PersistenceAppError(
                code="persistence_corrupt_record",
                message="Stored rate limiter record is not valid",
                details={"backend": "redis"},
            ) from exc

    def update_and_get(self, key: str, transform: RecordTransform) -> PersistenceRecord:
        redis_key = self._redis_key(key)

        def _apply(pipe: Any) -> PersistenceRecord:
            current = self._decode(pipe.get(redis_key))
            updated = transform(current)
            pipe.multi()
            pipe.set(redis_key, json.dumps(updated.to_dict()), ex=self._key_ttl_seconds)
            return updated

        try:
            return self._client.transaction(_apply, redis_key, value_from_callable=True)
        except RedisError as exc:
            logger.error(
                "persistence.update_failed",
                extra={"backend": "redis", "error_type": type(exc).__name__},
            )
            raise PersistenceAppError(
                code="persistence_update_failed",
                message="Failed to update rate limiter record in Redis",
                details={"backend": "redis"},
            ) from exc

    def get(self, key: str) -> PersistenceRecord | None:
        try:
            raw = self._client.get(self._redis_key(key))
        except RedisError as exc:
            logger.error(
                "persistence.read_failed",
                extra={"backend": "redis", "error_type": type(exc).__name__},
            )
            raise PersistenceAppError(
                code="persistence_read_failed",
                message="Failed to read rate limiter record from Redis",
                details={"backend": "redis"},
            ) from exc
        return self._decode(raw)
