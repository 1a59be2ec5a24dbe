from __future__ import annotations

import logging
from enum import IntEnum
from typing import List


class InvalidLogLevelError(ValueError):
    """Raised when a level name is not part of the PSR-3 vocabulary."""


class LogLevel(IntEnum):
    """
    Syslog/PSR-3 severities. Lower value means higher priority.

    Ordering helpers compare the numeric value explicitly so they never depend
    on declaration order.
    """

    EMERGENCY = 0  # System is unusable.
    ALERT = 1  # Action must be taken immediately.
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5  # Normal but significant condition.
    INFORMATIONAL = 6
    DEBUG = 7

    @classmethod
    def by_priority(cls) -> List["LogLevel"]:
        """Levels ordered by priority, most severe first."""
        return [
            cls.EMERGENCY,
            cls.ALERT,
            cls.CRITICAL,
            cls.ERROR,
            cls.WARNING,
            cls.NOTICE,
            cls.INFORMATIONAL,
            cls.DEBUG,
        ]

    def is_more_critical_than(self, other: "LogLevel") -> bool:
        return int(self.value) < int(other.value)

    def is_at_least(self, level: "LogLevel") -> bool:
        """True when this level is equal to or more critical than ``level``."""
        return int(self.value) <= int(level.value)

    def to_psr_level(self) -> str:
        return _PSR_NAMES[self]

    @classmethod
    def from_psr_level(cls, level: str) -> "LogLevel":
        """Case-insensitive reverse of ``to_psr_level``; ``informational`` is accepted too."""
        try:
            return _PSR_LOOKUP[str(level).strip().lower()]
        except KeyError:
            raise InvalidLogLevelError(f"Invalid PSR log level: {level}") from None

    def to_logging_level(self) -> int:
        """Closest stdlib ``logging`` level, used when emitting through structlog."""
        return _LOGGING_LEVELS[self]


_PSR_NAMES = {
    LogLevel.EMERGENCY: "emergency",
    LogLevel.ALERT: "alert",
    LogLevel.CRITICAL: "critical",
    LogLevel.ERROR: "error",
    LogLevel.WARNING: "warning",
    LogLevel.NOTICE: "notice",
    LogLevel.INFORMATIONAL: "info",
    LogLevel.DEBUG: "debug",
}

_PSR_LOOKUP = {name: level for level, name in _PSR_NAMES.items()}
_PSR_LOOKUP["informational"] = LogLevel.INFORMATIONAL

_LOGGING_LEVELS = {
    LogLevel.EMERGENCY: logging.CRITICAL,
    LogLevel.ALERT: logging.CRITICAL,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.NOTICE: logging.INFO,
    LogLevel.INFORMATIONAL: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}
