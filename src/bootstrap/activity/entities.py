"""
Activity entity
An immutable, leveled log entry for a discrete domain event.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from src.bootstrap.enums import LogLevel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Activity:
    description: str
    log_name: str
    log_level: LogLevel = LogLevel.INFORMATIONAL
    event: Optional[str] = None
    subject_type: Optional[str] = None
    subject_id: Optional[str] = None
    causer_id: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None
    correlation_id: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
