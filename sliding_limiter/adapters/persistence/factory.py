"""Factory pattern for creating persistence store instances."""

from sliding_limiter.adapters.persistence.base import AbstractPersistenceStore
from sliding_limiter.adapters.persistence.in_memory import InMemoryPersistenceStore
from sliding_limiter.adapters.persistence.redis_store import RedisPersistenceStore
from sliding_limiter.core.config import LimiterSettings, settings
from sliding_limiter.core.errors import ConfigurationAppError


def create_persistence_store(limiter_settings: LimiterSettings | None = None) -> AbstractPersistenceStore:
    """Instantiate the persistence backend selected in configuration.

    Args:
        limiter_settings: Limiter settings; defaults to the global settings.

    Returns:
        AbstractPersistenceStore: Configured store instance.

    Raises:
        ConfigurationAppError: If the backend is unknown or misconfigured.
    """
    cfg = limiter_settings or settings.limiter
    backend = cfg.backend.lower()

    if backend == "memory":
        return InMemoryPersistenceStore()

    if backend == "redis":
        if not cfg.redis_url:
            raise ConfigurationAppError(
                code="limiter_missing_redis_url",
                message="Redis backend requires LIMITER_REDIS_URL environment variable",
                details={"backend": backend, "field": "redis_url"},
            )
        return RedisPersistenceStore.from_url(
            cfg.redis_url,
            key_ttl_seconds=cfg.redis_key_ttl_seconds,
        )

    raise ConfigurationAppError(
        code="limiter_unknown_backend",
        message=f"Unknown persistence backend: '{backend}'. Supported backends: memory, redis",
        details={"backend": backend},
    )
