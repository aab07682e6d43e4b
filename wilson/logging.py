"""Loguru setup for the Wilson CLI."""

import sys
from typing import TYPE_CHECKING, Any

from loguru import logger


if TYPE_CHECKING:
    from loguru import Record


PALETTE = {
    "slate": "#6B7785",  # Timestamps, field names
    "rule": "#474E57",  # Separators
    "ink": "#E3E6EA",  # Message text
    "sky": "#5AA2E0",  # Info
    "leaf": "#5DB075",  # Success
    "sun": "#E8A93B",  # Warnings
    "brick": "#CF4F38",  # Errors
}

_LEVEL_TAGS = {
    "TRACE": f"<fg {PALETTE['rule']}>",
    "DEBUG": f"<fg {PALETTE['slate']}>",
    "INFO": f"<fg {PALETTE['sky']}>",
    "SUCCESS": f"<fg {PALETTE['leaf']}>",
    "WARNING": f"<fg {PALETTE['sun']}>",
    "ERROR": f"<fg {PALETTE['brick']}>",
    "CRITICAL": f"<fg {PALETTE['brick']}><bold>",
}


def _escape(text: str) -> str:
    # Field values must not be read as format fields or color tags
    return text.replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _format_fields(fields: dict[str, Any]) -> str:
    """Render structured fields as ``key=value`` pairs, skipping None."""
    pairs = [f"{key}={value!r}" for key, value in fields.items() if value is not None]
    return _escape(" ".join(pairs))


def _log_format(record: "Record") -> str:
    """Build the format string for one record.

    Layout: time, level, module, message, then any structured fields
    passed as keyword arguments to the logging call.
    """
    tag = _LEVEL_TAGS.get(record["level"].name, f"<fg {PALETTE['ink']}>")
    parts = [
        f"<fg {PALETTE['slate']}>{{time:HH:mm:ss.SSS}}</>",
        f"{tag}{{level: <7}}</>",
        f"<fg {PALETTE['slate']}>{{name}}</>",
        f"<fg {PALETTE['rule']}>·</>",
        f"<fg {PALETTE['ink']}>{{message}}</>",
    ]
    fields = _format_fields(record["extra"])
    if fields:
        parts.append(f"<fg {PALETTE['slate']}>[{fields}]</>")

    fmt = " ".join(parts) + "\n"
    if record["exception"]:
        fmt += "{exception}\n"
    return fmt


def configure_logging(level: str = "INFO", colorize: bool | None = None) -> None:
    """Send log records to stderr at ``level`` and above.

    Replaces any sink installed earlier, so it is safe to call again once
    settings are loaded.

    Args:
        level: Minimum level name, e.g. "DEBUG" or "WARNING".
        colorize: Force colors on or off. Defaults to whether stderr is a TTY.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_log_format,
        colorize=sys.stderr.isatty() if colorize is None else colorize,
        backtrace=False,
    )
