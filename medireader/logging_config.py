"""
Structured logging for the relay.

structlog renders JSON in production and colored console output
elsewhere. Per-request fields (``trace_id``, then ``device_key`` once a
device has been chosen) are bound with ``structlog.contextvars`` and
appear on every entry logged while the request is running. Image
payloads never reach the log output.

Usage:
    from medireader.logging_config import bind_device, get_logger

    logger = get_logger(__name__)
    bind_device("fresenius-4008s")
    logger.info("extraction_started")
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog

from medireader.config import get_settings

MAX_LOGGED_VALUE_LENGTH = 500
IMAGE_PAYLOAD_PREFIXES = ("data:image/", "/9j/", "iVBORw0KGgo")


def generate_trace_id() -> str:
    return uuid.uuid4().hex[:12]


def bind_request(trace_id: str) -> None:
    """Start a fresh logging context for one request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(trace_id=trace_id)


def bind_device(device_key: str) -> None:
    structlog.contextvars.bind_contextvars(device_key=device_key)


def _redact_image_payloads(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace base64 images with a size marker and cap other long strings."""
    for key, value in event_dict.items():
        if key == "event" or not isinstance(value, str):
            continue
        if value.startswith(IMAGE_PAYLOAD_PREFIXES):
            event_dict[key] = f"<image {len(value)} chars>"
        elif len(value) > MAX_LOGGED_VALUE_LENGTH:
            event_dict[key] = value[:MAX_LOGGED_VALUE_LENGTH] + "..."
    return event_dict


def setup_logging() -> None:
    """Configure structlog and route stdlib loggers (uvicorn, httpx) through it."""
    settings = get_settings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_image_payloads,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if settings.is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    # Multipart parsing logs every form part at DEBUG.
    for noisy in ("httpx", "httpcore", "multipart", "python_multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
