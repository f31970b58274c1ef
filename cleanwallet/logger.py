"""
Structured Logging

Every module logs through structlog with key-value context, e.g.

    logger = get_logger(__name__)
    logger.info("scan_image_completed", image_index=2, extracted=4)

configure_logging() is idempotent and is called once by the app
components factory. Prompts, API keys and image payloads are never
passed to the logger.
"""

import logging
import sys
from typing import Optional

import structlog

_configured = False


def configure_logging(level: Optional[str] = None, force: bool = False) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Args:
        level: Minimum log level name. Defaults to the app settings value.
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    if level is None:
        from cleanwallet.config import get_settings
        level = get_settings().app.log_level

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=force,
    )

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
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to `name`."""
    return structlog.get_logger(name)
