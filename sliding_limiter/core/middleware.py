"""Request correlation middleware.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from sliding_limiter.core.config import settings
from sliding_limiter.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128


def _resolve_request_id(incoming: str | None) -> str:
    """Reuse a caller's request id when it is safe to echo and log.

    Ids that are empty, too long, or contain whitespace or non-printable
    characters are replaced with a fresh UUID4.
    """
    if incoming:
        candidate = incoming.strip()
        if (
            0 < len(candidate) <= MAX_REQUEST_ID_LENGTH
            and candidate.isascii()
            and candidate.isprintable()
            and " " not in candidate
        ):
            return candidate
    return str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the duration of the request.

    The id is echoed in the configured header (X-Request-ID by default) and
    the elapsed time in X-Request-Duration-ms.
    """

    header_name = settings.log.request_id_header
    request_id = _resolve_request_id(request.headers.get(header_name))
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "http.request_completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
