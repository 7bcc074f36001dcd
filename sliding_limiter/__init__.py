"""Per-qualifier sliding-window call-rate limiter."""

from sliding_limiter.adapters.persistence import (
    AbstractPersistenceStore,
    InMemoryPersistenceStore,
    PersistenceRecord,
    RedisPersistenceStore,
)
from sliding_limiter.adapters.timestamp import AbstractTimestampProvider, SystemTimestampProvider
from sliding_limiter.services.rate_limiter import (
    DEFAULT_QUALIFIER,
    GenericRateLimiter,
    RateLimiterConfiguration,
    build_storage_key,
)

__all__ = [
    "DEFAULT_QUALIFIER",
    "AbstractPersistenceStore",
    "AbstractTimestampProvider",
    "GenericRateLimiter",
    "InMemoryPersistenceStore",
    "PersistenceRecord",
    "RateLimiterConfiguration",
    "RedisPersistenceStore",
    "SystemTimestampProvider",
    "build_storage_key",
]
