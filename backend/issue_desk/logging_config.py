"""
structlog setup.

Call `configure_logging()` once at startup, then:

    import structlog
    log = structlog.get_logger(__name__)
    log.info("issue_reviewed", issue_id=issue_id, action=action)

LOG_FORMAT=json gives one JSON object per line; anything else renders for a console.
"""
import logging
import os

import structlog
from dotenv import load_dotenv

load_dotenv()


def _log_level() -> int:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(log_format: str | None = None) -> None:
    log_format = (log_format or os.getenv("LOG_FORMAT", "console")).lower()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
