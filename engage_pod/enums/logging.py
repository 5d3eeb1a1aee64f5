"""Logging-level enum bridge to stdlib logging constants."""

import logging
from enum import IntEnum


class LogLevel(IntEnum):
    """Client log-level values, read from ``ENGAGE_LOG_LEVEL``."""

    NOTSET = logging.NOTSET
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: "str | int | LogLevel") -> "LogLevel":
        """Accept a member, a numeric level (``"10"``) or a name (``debug``, ``Warning``).

        Raises:
            ValueError: for names and numbers that are not a level.
        """
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls(int(text))
            try:
                return cls[text.upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown log level: {value}") from exc
        return cls(value)
