"""Logging setup shared by the entry points.

Components accept an optional ``logger`` and fall back to their module
logger, so nothing here mutates another module's state. SDK chatter is
dropped by a predicate attached to the handler rather than by patching
the loggers that emit it.
"""

import logging
import sys
from typing import Callable

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Loggers owned by third-party clients; their INFO/DEBUG output is noise here
SDK_LOGGER_PREFIXES = ("daytona", "daytona_api_client", "daytona_toolbox_api_client", "httpx", "httpcore", "urllib3", "aiohttp")

RecordPredicate = Callable[[logging.LogRecord], bool]


def is_sdk_noise(record: logging.LogRecord) -> bool:
    """True for sub-WARNING records emitted by SDK loggers."""
    if record.levelno >= logging.WARNING:
        return False
    return any(
        record.name == prefix or record.name.startswith(prefix + ".")
        for prefix in SDK_LOGGER_PREFIXES
    )


class PredicateFilter(logging.Filter):
    """Drops every record for which ``drop(record)`` is true."""

    def __init__(self, drop: RecordPredicate):
        super().__init__()
        self.drop = drop

    def filter(self, record: logging.LogRecord) -> bool:
        return not self.drop(record)


def configure_logging(
    level: int = logging.INFO,
    noise_filter: RecordPredicate | None = is_sdk_noise,
    stream=None,
) -> logging.Handler:
    """Install a single stream handler on the root logger.

    Args:
        level: Minimum level for the handler and root logger
        noise_filter: Predicate selecting records to drop (None keeps everything)
        stream: Output stream (defaults to stderr)

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    if noise_filter is not None:
        handler.addFilter(PredicateFilter(noise_filter))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    return handler
