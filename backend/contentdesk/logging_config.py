"""Structured logging configuration using structlog."""

import logging
import sys

import structlog

from contentdesk.config import Settings, get_settings


class SuppressStaticFilter(logging.Filter):
    """Filter that drops uvicorn access log entries for static upload downloads."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args and isinstance(record.args, tuple) and len(record.args) >= 5:
            path = record.args[2]
            status_code = record.args[4]
            if isinstance(path, str) and path.startswith("/uploads/") and status_code == 200:
                return False
        return True


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog with JSON output for production, console for development."""
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.app_debug else logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.is_production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Every image and PDF download would otherwise hit the access log
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.addFilter(SuppressStaticFilter())
