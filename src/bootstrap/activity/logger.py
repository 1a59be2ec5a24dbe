"""
Activity logging.

    activity = await activity_logger.pending() \
        .level(LogLevel.WARNING) \
        .use_log("cache") \
        .with_properties({"key": "users:42"}) \
        .log("cache miss")

The pending log only consumes what the request already established (trace
identity, aggregated context); it never runs context providers itself.
"""
from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional

from src.bootstrap.activity.entities import Activity
from src.bootstrap.context.scope import RequestScope, maybe_scope
from src.bootstrap.database.repositories import ActivityRepository
from src.bootstrap.enums import LogLevel
from src.bootstrap.logging import get_logger

logger = get_logger("activity")

ActivityTap = Callable[[Dict[str, Any]], None]


class ActivityLogStatus:
    """Process-wide switch; a disabled status turns every log() into a no-op."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    def enable(self) -> bool:
        self._enabled = True
        return self._enabled

    def disable(self) -> bool:
        self._enabled = False
        return self._enabled

    def disabled(self) -> bool:
        return not self._enabled


class PendingActivityLog:
    """Accumulates one activity; `log()` persists it."""

    def __init__(
        self,
        repository: ActivityRepository,
        status: ActivityLogStatus,
        log_name: str,
        scope: Optional[RequestScope] = None,
    ) -> None:
        self._repository = repository
        self._status = status
        self._log_name = log_name
        self._scope = scope
        self._level = LogLevel.INFORMATIONAL
        self._event: Optional[str] = None
        self._subject_type: Optional[str] = None
        self._subject_id: Optional[str] = None
        self._causer_id: Optional[str] = None
        self._properties: Dict[str, Any] = {}
        self._taps: List[ActivityTap] = []

    def log_level(self, level: LogLevel) -> "PendingActivityLog":
        self._level = level
        return self

    def level(self, level: LogLevel) -> "PendingActivityLog":
        return self.log_level(level)

    def use_log(self, log_name: str) -> "PendingActivityLog":
        self._log_name = log_name
        return self

    def set_log_status(self, status: ActivityLogStatus) -> "PendingActivityLog":
        self._status = status
        return self

    def event(self, event: str) -> "PendingActivityLog":
        self._event = event
        return self

    def caused_by(self, causer_id: Optional[str]) -> "PendingActivityLog":
        self._causer_id = causer_id
        return self

    def performed_on(self, subject_type: str, subject_id: Any) -> "PendingActivityLog":
        self._subject_type = subject_type
        self._subject_id = str(subject_id)
        return self

    def with_properties(self, properties: Dict[str, Any]) -> "PendingActivityLog":
        self._properties = dict(properties)
        return self

    def with_property(self, key: str, value: Any) -> "PendingActivityLog":
        self._properties[key] = value
        return self

    def tap(self, callback: ActivityTap) -> "PendingActivityLog":
        """Callback receives the mutable field dict right before the activity is built."""
        self._taps.append(callback)
        return self

    async def log(self, description: str) -> Optional[Activity]:
        if self._status.disabled():
            return None

        scope = self._scope or maybe_scope()
        fields: Dict[str, Any] = {
            "description": description,
            "log_name": self._log_name,
            "log_level": self._level,
            "event": self._event,
            "subject_type": self._subject_type,
            "subject_id": self._subject_id,
            "causer_id": self._causer_id if self._causer_id is not None else (scope.user.id if scope else None),
            "properties": copy.deepcopy(self._properties),
            "context": scope.context.all() if scope else {},
            "request_id": scope.trace.request_id if scope else None,
            "correlation_id": scope.trace.correlation_id if scope else None,
        }
        for callback in self._taps:
            callback(fields)

        activity = await self._repository.add(Activity(**fields))
        logger.log(
            activity.log_level.to_logging_level(),
            description,
            log_name=activity.log_name,
            psr_level=activity.log_level.to_psr_level(),
            activity_id=str(activity.id),
        )
        return activity


class ActivityLogger:
    """Process-wide factory for pending activity logs."""

    def __init__(
        self,
        repository: ActivityRepository,
        *,
        status: Optional[ActivityLogStatus] = None,
        default_log_name: str = "default",
    ) -> None:
        self._repository = repository
        self.status = status or ActivityLogStatus()
        self.default_log_name = default_log_name

    def pending(self, scope: Optional[RequestScope] = None) -> PendingActivityLog:
        return PendingActivityLog(self._repository, self.status, self.default_log_name, scope)
