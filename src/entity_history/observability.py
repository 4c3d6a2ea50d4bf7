"""Logging set-up for entity-history.

Modules obtain a logger with get_logger(__name__) and pass structured context
as keyword arguments, which loguru stores on the record's ``extra`` dict:

    logger.info("Snapshot reconstructed", entity_type="Order", property_count=3)

Messages passed together with keyword arguments must not contain literal
braces, since loguru formats the message with those arguments.

The package's records are disabled on import (see entity_history/__init__.py)
so that embedding applications see nothing until they opt in with
configure_logging() or ``logger.enable("entity_history")``.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from entity_history.settings import Settings

PACKAGE = "entity_history"

_TEXT_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[service]} | "
    "{extra[logger_name]} | {message} | {extra}"
)


def get_logger(name: str):  # noqa: ANN201
    """Return the shared loguru logger bound to a module name.

    Args:
        name: Usually the calling module's ``__name__``.

    Returns:
        A loguru logger whose records carry ``logger_name`` in ``extra``.
    """
    return logger.bind(logger_name=name)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "entity-history",
) -> None:
    """Replace loguru's default handler with a single stderr sink.

    Also enables the package's records, which are disabled on import. Safe
    to call more than once; every call removes previously added sinks.

    Args:
        level: Minimum level name to emit (DEBUG, INFO, WARNING, ...).
        json_logs: Emit one serialized JSON document per record instead of
            the human-readable text format.
        service_name: Stored as ``service`` on every record's ``extra``.
    """
    logger.remove()
    logger.configure(extra={"logger_name": PACKAGE, "service": service_name})
    if json_logs:
        logger.add(sys.stderr, level=level.upper(), serialize=True, backtrace=False)
    else:
        logger.add(sys.stderr, level=level.upper(), format=_TEXT_FORMAT, backtrace=False)
    logger.enable(PACKAGE)
    logger.bind(logger_name=__name__).debug("Logging configured", level=level, json_logs=json_logs)


def configure_logging_from(settings: Settings) -> None:
    """Apply the log_level, json_logs and service_name of Settings."""
    configure_logging(
        level=settings.log_level,
        json_logs=settings.json_logs,
        service_name=settings.service_name,
    )
