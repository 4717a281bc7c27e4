"""
relay_auth.api.__main__

Entrypoint for running the control API via `python -m relay_auth.api`.

Responsibilities:
- Load settings and build the app around a fresh coordinator.
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import uvicorn

from relay_auth.api.app import create_app
from relay_auth.observability.logging import get_logger
from relay_auth.settings import get_settings

log = get_logger(__name__)


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)
    log.info(
        "control_api_starting",
        host=settings.api_host,
        port=settings.api_port,
        preferences_path=str(settings.preferences_path) if settings.preferences_path else None,
    )

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
        # Request lines come from RequestContextMiddleware.
        access_log=False,
    )


if __name__ == "__main__":
    main()
