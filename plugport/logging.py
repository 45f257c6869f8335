"""Logging configuration for the Plugport command line.

Library modules only emit records through loguru; handlers are installed
by configure_logging(), which the CLI calls on startup.
"""

import sys
from typing import TYPE_CHECKING

from loguru import logger


if TYPE_CHECKING:
    from loguru import Record


def _escape(text: str) -> str:
    # Braces would be read as format fields, "<" as a color tag.
    return text.replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _log_format(record: "Record") -> str:
    """Build the loguru format string for one record.

    Records bound to an extension (``extension_point`` and ``name`` extras)
    are tagged ``point#name``; any other extras follow the message.
    """
    fmt = "<dim>{time:HH:mm:ss}</dim> <level>{level: <8}</level> "

    extra = dict(record["extra"])
    if "extension_point" in extra and "name" in extra:
        tag = f"{extra.pop('extension_point')}#{extra.pop('name')}"
        fmt += f"<cyan>[{_escape(tag)}]</cyan> "

    fmt += "{message}"
    if extra:
        fields = " ".join(f"{k}={v!r}" for k, v in extra.items())
        fmt += f" <dim>{_escape(fields)}</dim>"

    fmt += "\n"
    if record["exception"]:
        fmt += "{exception}\n"
    return fmt


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with the Plugport stderr handler.

    Args:
        level: Minimum log level to display (e.g., "DEBUG", "INFO", "WARNING").
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_log_format, colorize=True)
