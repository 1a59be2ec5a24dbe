import pytest
import structlog

from src.bootstrap.context import ContextAggregator, ContextData, LogSink, RequestScope, UserIdentity
from src.bootstrap.context.providers import TimestampProvider, UserProvider
from src.bootstrap.logging import PIIRedactionProcessor, add_timestamp, build_processors
from src.bootstrap.tracing import TraceIdentity
from tests.helpers import make_settings


@pytest.fixture(autouse=True)
def clean_contextvars():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


def emit(event: str) -> dict:
    """Run the context-merging head of the processor chain for one line."""
    event_dict = structlog.contextvars.merge_contextvars(None, "info", {"event": event})
    return add_timestamp(None, "info", event_dict)


def test_line_after_build_keeps_its_own_timestamp():
    scope = RequestScope(trace=TraceIdentity({"request_id": "r-1"}))
    ContextAggregator([TimestampProvider()], [LogSink()]).build(scope)
    started = scope.context.get("timestamp")

    line = emit("later")

    assert line["context.timestamp"] == started
    assert line["timestamp"] != started
    assert line["timestamp"].endswith("Z")
    assert "timestamp" not in structlog.contextvars.get_contextvars()


def test_log_sink_prefixes_reserved_keys_only():
    fields = LogSink.fields(ContextData({"timestamp": "t", "event": "e", "app": {"name": "svc"}}))
    assert fields == {"context.timestamp": "t", "context.event": "e", "app.name": "svc"}


def test_bound_user_email_is_masked():
    scope = RequestScope(
        trace=TraceIdentity({"request_id": "12345678-1234-1234-1234-123456789012", "correlation_id": "c-1"}),
        user=UserIdentity(id="42", name="Alice Smith", email="alice@example.com"),
    )
    ContextAggregator([UserProvider()], [LogSink()]).build(scope)
    structlog.contextvars.bind_contextvars(request_id=scope.trace.request_id)

    line = PIIRedactionProcessor()(None, "info", emit("user loaded"))

    assert line["user.email"] == "***@example.com"
    assert line["user.name"] == "***REDACTED***"
    assert line["user.id"] == "42"
    assert line["request_id"] == "12345678-1234-1234-1234-123456789012"


def test_redaction_walks_nested_values():
    line = PIIRedactionProcessor()(None, "info", {
        "event": "contact bob@corp.io",
        "payload": {"phones": ["+14155552671"], "ssn": "123-45-6789"},
    })
    assert line["event"] == "contact ***@corp.io"
    assert line["payload"]["phones"] == ["+1****2671"]
    assert line["payload"]["ssn"] == "***REDACTED***"


@pytest.mark.parametrize("environment, redacts", [("prod", True), ("staging", True), ("dev", False), ("local", False)])
def test_redaction_runs_in_prod_like_environments(environment, redacts):
    processors = build_processors(make_settings(environment=environment), "json")
    assert any(isinstance(p, PIIRedactionProcessor) for p in processors) is redacts
