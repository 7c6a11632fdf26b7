"""
Structured logging setup.

All modules log through ``structlog.get_logger(__name__)`` with snake_case
event names; this installs the processor chain once per process.
"""

import logging
import sys
from typing import Optional

import structlog

from hazardcast.config import settings

_configured = False


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (defaults to settings.log_level)
        fmt: "json" for machine-readable output, anything else for console
    """
    global _configured

    level = (level or settings.log_level).upper()
    fmt = fmt or settings.log_format

    # stdout carries command output only
    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(level)

    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if fmt == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
