"""
Structured logging for SpeakStream.

Every module logs through ``logging.getLogger(__name__)``. This module
provides the output side: a formatter that renders records either as
JSON lines or as human-readable lines, and ``configure_logging`` to
install it on the ``speakstream`` logger.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, TextIO


ROOT_LOGGER = "speakstream"

# Attributes every stdlib LogRecord carries. Anything else came in
# through ``extra=`` and is rendered as structured data.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "event"}


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }[self.value]


@dataclass
class LogRecord:
    """A structured log record.

    Attributes:
        level: Log level.
        event: Event name/type.
        message: Human-readable message.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    level: str
    event: str
    message: str = ""
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    # Context fields
    logger_name: str = ""
    thread_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        d.update(d.pop("data", {}))
        return d

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class StructuredFormatter(logging.Formatter):
    """Formatter rendering stdlib records as structured records.

    The event name is taken from ``extra={"event": ...}`` when given,
    otherwise from the last component of the logger name.

    Example:
        logger.info("Output device changed", extra={"event": "hot_swap", "device": name})

        # JSON:
        # {"level": "info", "event": "hot_swap", "message": "Output device changed",
        #  "logger_name": "speakstream.playback.device", "device": "USB", ...}
    """

    def __init__(self, json_format: bool = True):
        super().__init__()
        self.json_format = json_format

    def to_structured(self, record: logging.LogRecord) -> LogRecord:
        data = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return LogRecord(
            level=record.levelname.lower(),
            event=getattr(record, "event", record.name.rsplit(".", 1)[-1]),
            message=record.getMessage(),
            timestamp=record.created,
            data=data,
            logger_name=record.name,
            thread_name=record.threadName or "",
        )

    def format(self, record: logging.LogRecord) -> str:
        structured = self.to_structured(record)
        if self.json_format:
            return structured.to_json()
        return self._format_human(structured)

    def _format_human(self, record: LogRecord) -> str:
        """Format record for human reading."""
        timestamp = time.strftime(
            "%Y-%m-%d %H:%M:%S",
            time.localtime(record.timestamp),
        )

        parts = [
            f"[{timestamp}]",
            f"[{record.level.upper()}]",
            f"[{record.thread_name}]",
            f"[{record.event}]",
        ]

        if record.message:
            parts.append(record.message)

        exception = record.data.pop("exception", None)
        if record.data:
            data_str = " ".join(f"{k}={v}" for k, v in record.data.items())
            parts.append(f"({data_str})")

        line = " ".join(parts)
        if exception:
            line = f"{line}\n{exception}"
        return line


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> logging.Logger:
    """Configure speakstream logging.

    Replaces any handler installed by a previous call.

    Args:
        level: Log level.
        output: Output stream (default: stderr).
        json_format: Use JSON format.

    Returns:
        The configured ``speakstream`` logger.
    """
    if isinstance(level, str):
        level = LogLevel(level.lower())

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_speakstream", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(StructuredFormatter(json_format=json_format))
    handler._speakstream = True
    logger.addHandler(handler)
    logger.setLevel(level.numeric)
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a logger under the speakstream namespace.

    Args:
        name: Logger name.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
