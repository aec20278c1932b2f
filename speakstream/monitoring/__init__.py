"""
Monitoring: structured logging output.
"""

from speakstream.monitoring.logging import (
    LogLevel,
    LogRecord,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "LogLevel",
    "LogRecord",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
