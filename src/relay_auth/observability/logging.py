"""
relay_auth.observability.logging

Structured logging configuration.

Responsibilities:
- Configure `structlog` with a stable `service` field and JSON or console rendering.
- Hand out module loggers, optionally pre-bound to one relay URL.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    # Console output is for local runs; anything shipped to a collector stays JSON.
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def relay_logger(name: str, url: str) -> structlog.stdlib.BoundLogger:
    return get_logger(name).bind(relay=url)


# --- Module Notes -----------------------------------------------------------
# Library code only calls `get_logger` / `relay_logger`; the embedding process (or
# `relay_auth.api`) decides when `configure_logging` runs. HTTP request metadata is bound
# through contextvars in `observability.middleware`.
