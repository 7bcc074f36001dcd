"""Run the HTTP service: python -m sliding_limiter"""

import uvicorn

from sliding_limiter.core.config import settings


def main() -> None:
    uvicorn.run(
        "sliding_limiter.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
