"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from sliding_limiter.api.routes import health_router, limits_router
from sliding_limiter.core.config import settings
from sliding_limiter.core.exception_handlers import setup_exception_handlers
from sliding_limiter.core.logging import configure_logging
from sliding_limiter.core.middleware import request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Sliding Limiter",
        description=(
            "Per-qualifier sliding-window call-rate limiter. Each check prunes "
            "calls older than the window, admits the call when fewer than "
            "max_calls remain, and records admitted calls atomically."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    return app
