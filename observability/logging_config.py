"""
Structured Logging Configuration
================================

structlog setup shared by the CLI and the HTTP service. Standard-library
log records (uvicorn, httpx, openai) go through the same renderer.
"""

import logging
import os
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai")


def setup_logging(
    level: str | None = None,
    json_format: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging for the process.

    Args:
        level: Log level (default: LOG_LEVEL env or INFO)
        json_format: Render JSON lines (default: LOG_FORMAT=json, or ENVIRONMENT=production)
        stream: Destination stream (default: stderr, keeping stdout free for CLI output)
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    environment = os.getenv("ENVIRONMENT", "development")

    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "").lower() == "json" or environment == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind key/value pairs to every subsequent log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
