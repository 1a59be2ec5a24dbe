import pytest
from structlog.testing import capture_logs

from src.bootstrap.activity.logger import ActivityLogger, ActivityLogStatus
from src.bootstrap.context import ContextData, RequestScope, UserIdentity, bind_scope
from src.bootstrap.enums import LogLevel
from src.bootstrap.tracing import TraceIdentity
from tests.helpers import InMemoryActivityRepository, only


def new_scope(**kwargs) -> RequestScope:
    return RequestScope(trace=TraceIdentity({"request_id": "r-1", "correlation_id": "c-1"}), **kwargs)


@pytest.fixture
def repository():
    return InMemoryActivityRepository()


@pytest.fixture
def activity_logger(repository):
    return ActivityLogger(repository, default_log_name="default")


@pytest.mark.asyncio
async def test_defaults(activity_logger, repository):
    activity = await activity_logger.pending().log("user signed in")

    assert only(repository.items) is activity
    assert activity.description == "user signed in"
    assert activity.log_name == "default"
    assert activity.log_level is LogLevel.INFORMATIONAL
    assert activity.request_id is None
    assert activity.context == {}


@pytest.mark.asyncio
async def test_trace_ids_and_context_come_from_bound_scope(activity_logger):
    scope = new_scope(context=ContextData({"app": {"name": "svc"}}))
    with bind_scope(scope):
        activity = await activity_logger.pending().log("cache miss")

    assert activity.request_id == "r-1"
    assert activity.correlation_id == "c-1"
    assert activity.context == {"app": {"name": "svc"}}


@pytest.mark.asyncio
async def test_context_snapshot_is_detached_from_scope(activity_logger):
    scope = new_scope(context=ContextData({"app": {"name": "svc"}}))
    activity = await activity_logger.pending(scope).log("snapshot")
    scope.context.set("app.name", "changed")
    assert activity.context["app"]["name"] == "svc"


@pytest.mark.asyncio
async def test_fluent_builder_fields(activity_logger):
    activity = await (
        activity_logger.pending(new_scope())
        .level(LogLevel.WARNING)
        .use_log("cache")
        .event("evicted")
        .performed_on("order", 17)
        .caused_by("user-9")
        .with_properties({"key": "orders:17"})
        .with_property("ttl", 60)
        .log("cache miss")
    )

    assert activity.log_level is LogLevel.WARNING
    assert activity.log_name == "cache"
    assert activity.event == "evicted"
    assert activity.subject_type == "order"
    assert activity.subject_id == "17"
    assert activity.causer_id == "user-9"
    assert activity.properties == {"key": "orders:17", "ttl": 60}


@pytest.mark.asyncio
async def test_causer_defaults_to_scope_user(activity_logger):
    scope = new_scope(user=UserIdentity(id="42"))
    activity = await activity_logger.pending(scope).log("profile updated")
    assert activity.causer_id == "42"


@pytest.mark.asyncio
async def test_taps_run_in_order_before_persisting(activity_logger):
    seen = []

    def first(fields):
        seen.append("first")
        fields["properties"]["tapped"] = True

    def second(fields):
        seen.append("second")
        fields["log_name"] = "audit"

    activity = await activity_logger.pending().tap(first).tap(second).log("exported")

    assert seen == ["first", "second"]
    assert activity.properties == {"tapped": True}
    assert activity.log_name == "audit"


@pytest.mark.asyncio
async def test_disabled_status_persists_nothing(activity_logger, repository):
    activity_logger.status.disable()
    assert await activity_logger.pending().log("ignored") is None
    assert repository.items == []

    activity_logger.status.enable()
    assert await activity_logger.pending().log("kept") is not None
    assert len(repository.items) == 1


@pytest.mark.asyncio
async def test_status_can_be_overridden_per_log(activity_logger, repository):
    off = ActivityLogStatus(enabled=False)
    assert off.disabled()
    assert await activity_logger.pending().set_log_status(off).log("ignored") is None
    assert repository.items == []


@pytest.mark.asyncio
async def test_logs_at_mapped_level(activity_logger):
    with capture_logs() as logs:
        activity = await activity_logger.pending().level(LogLevel.ERROR).use_log("billing").log("charge failed")

    entry = only([e for e in logs if e["event"] == "charge failed"])
    assert entry["log_level"] == "error"
    assert entry["psr_level"] == "error"
    assert entry["log_name"] == "billing"
    assert entry["activity_id"] == str(activity.id)
