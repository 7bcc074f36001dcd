from __future__ import annotations

from sliding_limiter.api.routes.health import router as health_router
from sliding_limiter.api.routes.limits import router as limits_router

__all__ = ["health_router", "limits_router"]
