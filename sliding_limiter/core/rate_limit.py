"""Rate limiting dependency for FastAPI routes.

This module wires the sliding-window limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the persistence backend is chosen by configuration behind
  an abstract interface.

Qualifier resolution:
- The configured qualifier header (X-Client-ID by default) when present.
- Otherwise the client IP.
"""

from __future__ import annotations

import logging
import threading

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from sliding_limiter.adapters.persistence.factory import create_persistence_store
from sliding_limiter.adapters.timestamp.system import SystemTimestampProvider
from sliding_limiter.core.config import settings
from sliding_limiter.core.errors import QuotaExceededAppError
from sliding_limiter.services.rate_limiter import (
    GenericRateLimiter,
    RateLimiterConfiguration,
    hash_qualifier,
)

logger = logging.getLogger(__name__)


# (configuration key, limiter), replaced as one value
_cached: tuple[tuple, GenericRateLimiter] | None = None
_limiter_lock = threading.Lock()


def get_rate_limiter() -> GenericRateLimiter:
    """Return the process-wide limiter instance.

    The instance is cached in-module so the in-memory backend keeps its
    records across requests. If configuration changes (primarily in tests),
    the limiter and its store are rebuilt. Sync routes resolve this from the
    threadpool, so building is serialized: concurrent first requests must
    share one store.
    """

    global _cached

    cfg = settings.limiter
    config = (
        cfg.name,
        cfg.period_seconds,
        cfg.max_calls,
        cfg.debug,
        cfg.backend,
        cfg.redis_url,
        cfg.redis_key_ttl_seconds,
    )

    cached = _cached
    if cached is not None and cached[0] == config:
        return cached[1]

    with _limiter_lock:
        if _cached is not None and _cached[0] == config:
            return _cached[1]

        limiter = GenericRateLimiter(
            RateLimiterConfiguration.from_settings(cfg),
            create_persistence_store(cfg),
            SystemTimestampProvider(),
        )
        _cached = (config, limiter)
        logger.info(
            "rate_limit.limiter_built",
            extra={
                "limiter": cfg.name,
                "backend": cfg.backend,
                "max_calls": cfg.max_calls,
                "period_s": cfg.period_seconds,
            },
        )

    return limiter


def reset_rate_limiter() -> None:
    """Drop the cached limiter so the next request builds a fresh one."""

    global _cached
    with _limiter_lock:
        _cached = None


def resolve_qualifier(request: Request) -> str:
    """Build the limiter qualifier for the current request."""

    client_id = request.headers.get(settings.app.qualifier_header)
    if client_id:
        return f"client:{client_id}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the call quota.

    When enabled, records one call for the requester. If the requester is
    over quota, raises QuotaExceededAppError (rendered as HTTP 429).

    Raises:
        QuotaExceededAppError: When the quota for the window is used up.
        PersistenceAppError: When the backend fails; never treated as admit.
    """

    if not settings.app.rate_limit_enabled:
        return

    limiter = get_rate_limiter()
    qualifier = resolve_qualifier(request)
    key_type = qualifier.split(":", 1)[0]

    # Store round trips block (Redis); keep them off the event loop.
    if await run_in_threadpool(limiter.check_and_record, qualifier):
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_type": key_type,
                "qualifier_hash": hash_qualifier(qualifier),
                "limit": limiter.configuration.max_calls,
                "window_s": limiter.configuration.period_seconds,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_type": key_type,
            "qualifier_hash": hash_qualifier(qualifier),
            "limit": limiter.configuration.max_calls,
            "window_s": limiter.configuration.period_seconds,
        },
    )

    raise QuotaExceededAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={
            "limiter": limiter.configuration.name,
            "max_calls": limiter.configuration.max_calls,
            "period_seconds": limiter.configuration.period_seconds,
            "retry_after": limiter.configuration.period_seconds,
        },
    )
