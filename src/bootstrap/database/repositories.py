"""
Append-only SQLAlchemy repositories for activities and exception records.
"""
from __future__ import annotations

from typing import Generic, List, Protocol, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.bootstrap.activity.entities import Activity
from src.bootstrap.database.base_model import Base
from src.bootstrap.database.models import ActivityModel, ExceptionModel
from src.bootstrap.enums import LogLevel
from src.bootstrap.reporting.records import CauseRecord, ExceptionRecord

TEntity = TypeVar("TEntity")
TModel = TypeVar("TModel", bound=Base)


class ActivityRepository(Protocol):
    async def add(self, activity: Activity) -> Activity: ...


class ExceptionRepository(Protocol):
    async def add(self, record: ExceptionRecord) -> ExceptionRecord: ...


class SQLAlchemyAppendOnlyRepository(Generic[TEntity, TModel]):
    """
    Generic async repository that only inserts and reads.

    Each call opens its own short session so writes never join (or roll back)
    the caller's unit of work.

    Type Parameters:
        TEntity: Domain entity type
        TModel: SQLAlchemy ORM model type
    """

    model_class: Type[TModel]

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    def _to_entity(self, model: TModel) -> TEntity:
        raise NotImplementedError("Subclass must implement _to_entity")

    def _to_model(self, entity: TEntity) -> TModel:
        raise NotImplementedError("Subclass must implement _to_model")

    async def add(self, entity: TEntity) -> TEntity:
        async with self.session_factory() as session:
            async with session.begin():
                session.add(self._to_model(entity))
        return entity

    async def find_by_request_id(self, request_id: str) -> List[TEntity]:
        stmt = (
            select(self.model_class)
            .where(self.model_class.request_id == request_id)
            .order_by(self.model_class.created_at)
        )
        return await self._fetch(stmt)

    async def find_by_correlation_id(self, correlation_id: str) -> List[TEntity]:
        stmt = (
            select(self.model_class)
            .where(self.model_class.correlation_id == correlation_id)
            .order_by(self.model_class.created_at)
        )
        return await self._fetch(stmt)

    async def list_recent(self, limit: int = 100) -> List[TEntity]:
        stmt = select(self.model_class).order_by(self.model_class.created_at.desc()).limit(limit)
        return await self._fetch(stmt)

    async def _fetch(self, stmt) -> List[TEntity]:
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            models: Sequence[TModel] = result.scalars().all()
        return [self._to_entity(model) for model in models]


class SQLAlchemyActivityRepository(SQLAlchemyAppendOnlyRepository[Activity, ActivityModel]):
    model_class = ActivityModel

    def _to_entity(self, model: ActivityModel) -> Activity:
        return Activity(
            id=model.id,
            log_name=model.log_name,
            description=model.description,
            log_level=LogLevel(model.log_level),
            event=model.event,
            subject_type=model.subject_type,
            subject_id=model.subject_id,
            causer_id=model.causer_id,
            properties=dict(model.properties or {}),
            context=dict(model.context or {}),
            request_id=model.request_id,
            correlation_id=model.correlation_id,
            created_at=model.created_at,
        )

    def _to_model(self, entity: Activity) -> ActivityModel:
        return ActivityModel(
            id=entity.id,
            log_name=entity.log_name,
            description=entity.description,
            log_level=int(entity.log_level),
            event=entity.event,
            subject_type=entity.subject_type,
            subject_id=entity.subject_id,
            causer_id=entity.causer_id,
            properties=entity.properties,
            context=entity.context,
            request_id=entity.request_id,
            correlation_id=entity.correlation_id,
            created_at=entity.created_at,
        )


class SQLAlchemyExceptionRepository(SQLAlchemyAppendOnlyRepository[ExceptionRecord, ExceptionModel]):
    model_class = ExceptionModel

    def _to_entity(self, model: ExceptionModel) -> ExceptionRecord:
        return ExceptionRecord(
            id=model.id,
            exception_class=model.exception_class,
            message=model.message,
            user_message=model.user_message,
            file=model.file,
            line=model.line,
            code=model.code,
            status_code=model.status_code,
            is_retryable=model.is_retryable,
            error_id=model.error_id,
            app_env=model.app_env,
            app_debug=model.app_debug,
            app_name=model.app_name,
            app_version=model.app_version,
            app_commit=model.app_commit,
            host_name=model.host_name,
            host_ip=model.host_ip,
            user_id=model.user_id,
            request_id=model.request_id,
            correlation_id=model.correlation_id,
            stack_trace=model.stack_trace,
            previous=tuple(CauseRecord(**cause) for cause in (model.previous or [])),
            context=dict(model.context or {}),
            created_at=model.created_at,
        )

    def _to_model(self, entity: ExceptionRecord) -> ExceptionModel:
        first = entity.first_cause
        return ExceptionModel(
            id=entity.id,
            exception_class=entity.exception_class,
            message=entity.message,
            user_message=entity.user_message,
            file=entity.file,
            line=entity.line,
            code=entity.code,
            status_code=entity.status_code,
            is_retryable=entity.is_retryable,
            error_id=entity.error_id,
            app_env=entity.app_env,
            app_debug=entity.app_debug,
            app_name=entity.app_name,
            app_version=entity.app_version,
            app_commit=entity.app_commit,
            host_name=entity.host_name,
            host_ip=entity.host_ip,
            user_id=entity.user_id,
            request_id=entity.request_id,
            correlation_id=entity.correlation_id,
            stack_trace=entity.stack_trace,
            previous_exception_class=first.exception_class if first else None,
            previous_message=first.message if first else None,
            previous_file=first.file if first else None,
            previous_line=first.line if first else None,
            previous_code=first.code if first else None,
            previous_stack_trace=first.stack_trace if first else None,
            previous=entity.causes_as_dicts(),
            context=entity.context,
            created_at=entity.created_at,
        )
