"""Log sinks for API client events.

A sink is any object with ``log(message, level="info", **fields)``. The
client and retry policy accept an optional sink; ``None`` means events are
dropped.
"""

import logging
from typing import Any, Optional, Protocol


class LogSink(Protocol):
    def log(self, message: str, level: str = "info", **fields: Any) -> None:
        ...


class ChannelLogger:
    """Routes sink events to a named stdlib logger.

    Structured fields are attached to the log record through ``extra`` so
    handlers and formatters can pick them up.
    """

    def __init__(self, channel: str):
        self.channel = channel
        self._logger = logging.getLogger(channel)

    def log(self, message: str, level: str = "info", **fields: Any) -> None:
        levelno = getattr(logging, str(level).upper(), logging.INFO)
        if not isinstance(levelno, int):
            levelno = logging.INFO
        self._logger.log(levelno, message, extra=fields or None)


def emit(sink: Optional[LogSink], message: str, level: str = "info", **fields: Any) -> None:
    """Send an event to ``sink`` if one is configured."""
    if sink is None:
        return
    sink.log(message, level, **fields)
