import asyncio
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request

from src.bootstrap.activity.entities import Activity
from src.bootstrap.config import Settings
from src.bootstrap.container import Services, build_services
from src.bootstrap.context.scope import current_scope
from src.bootstrap.enums import LogLevel
from src.bootstrap.exceptions import NotFoundError
from src.bootstrap.reporting.records import ExceptionRecord
from src.main import create_app, get_services


class InMemoryActivityRepository:
    def __init__(self) -> None:
        self.items: List[Activity] = []

    async def add(self, activity: Activity) -> Activity:
        self.items.append(activity)
        return activity


class InMemoryExceptionRepository:
    def __init__(self) -> None:
        self.items: List[ExceptionRecord] = []

    async def add(self, record: ExceptionRecord) -> ExceptionRecord:
        self.items.append(record)
        return record


class BrokenExceptionRepository:
    async def add(self, record: ExceptionRecord) -> ExceptionRecord:
        raise ConnectionError("database is down")


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        is_testing=True,
        app_name="bootstrap-test",
        app_version="1.2.3",
        app_commit="abc1234",
        log_format="console",
    )
    values.update(overrides)
    return Settings(**values)


def fresh_services(settings: Optional[Settings] = None, **kwargs: Any) -> Services:
    """Services over in-memory repositories (no database)."""
    return build_services(
        settings or make_settings(),
        activity_repository=kwargs.pop("activity_repository", InMemoryActivityRepository()),
        exception_repository=kwargs.pop("exception_repository", InMemoryExceptionRepository()),
        **kwargs,
    )


def only(items: List[Any]) -> Any:
    assert len(items) == 1, items
    return items[0]


def add_test_routes(app: FastAPI) -> None:
    @app.get("/cache")
    async def cache_miss(services: Services = Depends(get_services)):
        activity = await services.activity_logger.pending().level(LogLevel.WARNING).log("cache miss")
        return {"activity_id": str(activity.id) if activity else None}

    @app.get("/whoami")
    async def whoami(request: Request, delay: float = 0.0):
        await asyncio.sleep(delay)
        scope = current_scope()
        return {
            "request_id": scope.trace.request_id,
            "correlation_id": scope.trace.correlation_id,
            "context_request_id": scope.context.get("request.id"),
            "context_correlation_id": scope.context.get("correlation_id"),
            "same_request": request.state.scope is scope,
        }

    @app.get("/where", name="where")
    async def where(request: Request):
        return {
            "scheme": request.url.scheme,
            "url_for": str(request.url_for("where")),
            "context_scheme": current_scope().context.get("request.scheme"),
        }

    @app.get("/widgets/{widget_id}")
    async def widget(widget_id: int):
        raise NotFoundError(f"widget {widget_id} missing", user_message="Widget not found")

    @app.get("/crash")
    async def crash():
        try:
            {}["missing"]
        except KeyError as e:
            raise RuntimeError("lookup failed") from e


def build_test_app(services: Services) -> FastAPI:
    app = create_app(services=services)
    add_test_routes(app)
    return app
