"""
ORM models for the append-only activity_log and exceptions tables.
"""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.bootstrap.database.base_model import Base
from src.bootstrap.tracing import MAX_CORRELATION_ID_LENGTH


class ActivityModel(Base):
    """
    SQLAlchemy model for the activity_log table.

    Immutable trail of leveled domain events.
    """

    __tablename__ = "activity_log"

    log_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    log_level: Mapped[int] = mapped_column(SmallInteger, nullable=False, index=True)
    event: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    subject_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subject_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    causer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    properties: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    request_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    correlation_id: Mapped[Optional[str]] = mapped_column(String(MAX_CORRELATION_ID_LENGTH), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<ActivityModel(id={self.id}, log_name={self.log_name})>"


class ExceptionModel(Base):
    """
    SQLAlchemy model for the exceptions table.

    One row per reported exception; the full cause chain lives in `previous`,
    the first cause is also kept in the flat previous_* columns.
    """

    __tablename__ = "exceptions"

    exception_class: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    user_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    line: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    code: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_retryable: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    error_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    app_env: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    app_debug: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    app_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    app_version: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    app_commit: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    host_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    host_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    correlation_id: Mapped[Optional[str]] = mapped_column(String(MAX_CORRELATION_ID_LENGTH), nullable=True, index=True)

    stack_trace: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    previous_exception_class: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    previous_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous_file: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    previous_line: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    previous_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    previous_stack_trace: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<ExceptionModel(id={self.id}, exception_class={self.exception_class})>"
