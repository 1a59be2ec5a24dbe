import errno

from src.bootstrap.context import ContextData, RequestScope
from src.bootstrap.exceptions import NotFoundError, RateLimitedError
from src.bootstrap.reporting.records import (
    ExceptionRecord,
    exception_class,
    exception_code,
    iter_causes,
)
from src.bootstrap.tracing import TraceIdentity


def raise_chain():
    try:
        try:
            raise OSError(errno.ECONNREFUSED, "connection refused")
        except OSError as low:
            raise KeyError("user:42") from low
    except KeyError as mid:
        raise RuntimeError("lookup failed") from mid


def captured(fn):
    try:
        fn()
    except Exception as e:
        return e
    raise AssertionError("expected an exception")


def scope_with_context() -> RequestScope:
    return RequestScope(
        trace=TraceIdentity({"request_id": "r-1", "correlation_id": "c-1"}),
        context=ContextData({
            "app": {"env": "dev", "debug": True, "name": "svc", "version": "1.2.3", "commit": "abc"},
            "host": {"name": "box-1", "ip": "10.0.0.5"},
            "user": {"id": "42"},
        }),
    )


def test_record_captures_location_and_trace():
    exc = captured(raise_chain)
    record = ExceptionRecord.from_exception(exc, scope_with_context())

    assert record.exception_class == "RuntimeError"
    assert record.message == "lookup failed"
    assert record.file.endswith("test_exception_records.py")
    assert record.line is not None
    assert "raise_chain" in record.stack_trace
    assert record.request_id == "r-1"
    assert record.correlation_id == "c-1"


def test_record_pulls_identity_from_context():
    record = ExceptionRecord.from_exception(captured(raise_chain), scope_with_context())

    assert record.app_env == "dev"
    assert record.app_debug is True
    assert record.app_name == "svc"
    assert record.app_version == "1.2.3"
    assert record.app_commit == "abc"
    assert record.host_name == "box-1"
    assert record.host_ip == "10.0.0.5"
    assert record.user_id == "42"
    assert record.context["host"]["ip"] == "10.0.0.5"


def test_cause_chain_is_kept_in_order():
    record = ExceptionRecord.from_exception(captured(raise_chain))

    assert [c.exception_class for c in record.previous] == ["KeyError", "ConnectionRefusedError"]
    assert record.first_cause.message == "'user:42'"
    assert record.previous[-1].code == errno.ECONNREFUSED
    assert record.causes_as_dicts()[0]["exception_class"] == "KeyError"


def test_implicit_context_is_followed_unless_suppressed():
    def implicit():
        try:
            raise ValueError("inner")
        except ValueError:
            raise TypeError("outer")

    def suppressed():
        try:
            raise ValueError("inner")
        except ValueError:
            raise TypeError("outer") from None

    assert [type(c) for c in iter_causes(captured(implicit))] == [ValueError]
    assert list(iter_causes(captured(suppressed))) == []


def test_cause_cycle_terminates():
    a = RuntimeError("a")
    b = RuntimeError("b")
    a.__cause__ = b
    b.__cause__ = a
    assert list(iter_causes(a)) == [b]


def test_record_without_scope_has_empty_identity():
    record = ExceptionRecord.from_exception(ValueError("never raised"))

    assert record.file is None
    assert record.line is None
    assert record.stack_trace is None
    assert record.request_id is None
    assert record.app_name is None
    assert record.context == {}
    assert record.previous == ()


def test_app_exception_fields_are_recorded():
    err = NotFoundError("widget 7 missing", user_message="Widget not found")
    record = ExceptionRecord.from_exception(err)

    assert record.user_message == "Widget not found"
    assert record.status_code == 404
    assert record.is_retryable is False
    assert record.error_id == err.get_error_id()

    retryable = ExceptionRecord.from_exception(RateLimitedError("slow down"))
    assert retryable.is_retryable is True
    assert retryable.status_code == 429


def test_plain_exception_has_no_app_fields():
    record = ExceptionRecord.from_exception(ValueError("bad"))
    assert record.user_message is None
    assert record.status_code is None
    assert record.error_id is None


def test_exception_class_is_qualified_outside_builtins():
    assert exception_class(ValueError()) == "ValueError"
    assert exception_class(NotFoundError()) == "src.bootstrap.exceptions.NotFoundError"


def test_exception_code():
    assert exception_code(OSError(errno.ENOENT, "missing")) == errno.ENOENT
    assert exception_code(ValueError("x")) == 0

    class Coded(Exception):
        code = 7

    assert exception_code(Coded()) == 7


def test_app_exception_payload_carries_no_trace_fields():
    err = NotFoundError("widget 7 missing", user_message="Widget not found", details={"id": 7}, error_id="e-1")
    assert err.to_payload() == {
        "code": "not_found",
        "message": "Widget not found",
        "error_id": "e-1",
        "details": {"id": 7},
    }
