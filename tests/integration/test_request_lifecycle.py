import pytest
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from src.bootstrap.enums import LogLevel
from tests.helpers import (
    BrokenExceptionRepository,
    InMemoryActivityRepository,
    build_test_app,
    fresh_services,
    make_settings,
    only,
)


@pytest.mark.asyncio
async def test_activity_carries_request_trace(client, services):
    resp = await client.get("/cache", headers={"X-Correlation-Id": "corr-123"})
    assert resp.status_code == 200

    activity = only(await services.activity_repository.find_by_correlation_id("corr-123"))
    assert activity.log_level is LogLevel.WARNING
    assert activity.description == "cache miss"
    assert activity.request_id == resp.headers["X-Request-Id"]
    assert activity.correlation_id == "corr-123"
    assert activity.context["app"]["name"] == "bootstrap-test"
    assert activity.context["request"]["method"] == "GET"
    assert activity.context["correlation_id"] == "corr-123"


@pytest.mark.asyncio
async def test_tracing_headers_are_echoed(client):
    resp = await client.get("/up", headers={"X-Correlation-Id": "corr-echo", "X-Request-Id": "spoofed"})

    assert resp.status_code == 200
    body = resp.json()
    assert resp.headers["X-Correlation-Id"] == "corr-echo"
    assert resp.headers["X-Request-Id"] == body["request_id"]
    assert body["request_id"] != "spoofed"
    assert body["correlation_id"] == "corr-echo"
    assert resp.headers["X-App-Version"] == "1.2.3"


@pytest.mark.asyncio
async def test_correlation_id_generated_when_absent(client):
    resp = await client.get("/up")
    assert resp.headers["X-Correlation-Id"] == resp.json()["correlation_id"]


@pytest.mark.asyncio
async def test_scope_is_shared_between_middleware_and_endpoint(client):
    resp = await client.get("/whoami", headers={"X-Correlation-Id": "corr-who"})
    body = resp.json()

    assert body["same_request"] is True
    assert body["request_id"] == resp.headers["X-Request-Id"]
    assert body["context_request_id"] == body["request_id"]
    assert body["context_correlation_id"] == "corr-who"


@pytest.mark.asyncio
async def test_app_error_renders_contract_and_is_recorded(client, services):
    resp = await client.get("/widgets/7", headers={"X-Correlation-Id": "corr-404"})

    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["code"] == "not_found"
    assert error["message"] == "Widget not found"
    assert error["correlation_id"] == "corr-404"
    assert error["request_id"] == resp.headers["X-Request-Id"]

    record = only(await services.exception_repository.find_by_request_id(error["request_id"]))
    assert record.exception_class == "src.bootstrap.exceptions.NotFoundError"
    assert record.message == "widget 7 missing"
    assert record.user_message == "Widget not found"
    assert record.error_id == error["error_id"]
    assert record.status_code == 404
    assert record.correlation_id == "corr-404"
    assert record.app_name == "bootstrap-test"
    assert record.app_version == "1.2.3"
    assert record.context["exception"]["id"] == error["error_id"]


@pytest.mark.asyncio
async def test_unhandled_error_hides_details_and_keeps_cause_chain(client, services):
    resp = await client.get("/crash")

    assert resp.status_code == 500
    error = resp.json()["error"]
    assert error["code"] == "internal_error"
    assert "lookup failed" not in resp.text
    assert "Traceback" not in resp.text

    record = only(await services.exception_repository.find_by_request_id(error["request_id"]))
    assert record.exception_class == "RuntimeError"
    assert record.message == "lookup failed"
    assert record.first_cause.exception_class == "KeyError"
    assert record.stack_trace


@pytest.mark.asyncio
async def test_broken_exception_store_does_not_change_response():
    services = fresh_services(
        activity_repository=InMemoryActivityRepository(),
        exception_repository=BrokenExceptionRepository(),
    )
    app = build_test_app(services)

    with capture_logs() as logs:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get("/widgets/3")

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"
    assert any(e["event"] == "exception_persist_failed" for e in logs)
    assert any(e["event"] == "exception_reported" for e in logs)


@pytest.mark.asyncio
async def test_echo_headers_can_be_disabled():
    services = fresh_services(make_settings(tracing_echo_headers=False))
    app = build_test_app(services)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/up")

    assert resp.status_code == 200
    assert "X-Request-Id" not in resp.headers
    assert resp.json()["request_id"]


@pytest.mark.asyncio
async def test_disabled_activity_log_persists_nothing():
    repository = InMemoryActivityRepository()
    services = fresh_services(make_settings(activity_logger_enabled=False), activity_repository=repository)
    app = build_test_app(services)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/cache")

    assert resp.json() == {"activity_id": None}
    assert repository.items == []


@pytest.mark.asyncio
async def test_inbound_app_version_is_not_echoed(client):
    resp = await client.get("/up", headers={"X-App-Version": "evil-9.9"})
    assert resp.headers["X-App-Version"] == "1.2.3"


@pytest.mark.asyncio
async def test_oversized_correlation_id_still_logs_activity(client, services):
    resp = await client.get("/cache", headers={"X-Correlation-Id": "x" * 300})

    assert resp.status_code == 200
    correlation_id = resp.headers["X-Correlation-Id"]
    assert len(correlation_id) == 36
    activity = only(await services.activity_repository.find_by_correlation_id(correlation_id))
    assert activity.description == "cache miss"


@pytest.mark.asyncio
async def test_forced_https_rewrites_scheme_without_redirecting():
    services = fresh_services(make_settings(environment="prod", force_https=True))
    app = build_test_app(services)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        up = await ac.get("/up")
        where = await ac.get("/where")

    assert up.status_code == 200
    assert where.status_code == 200
    body = where.json()
    assert body["scheme"] == "https"
    assert body["url_for"] == "https://test/where"
    assert body["context_scheme"] == "https"


@pytest.mark.asyncio
async def test_scheme_untouched_when_https_not_forced(client):
    body = (await client.get("/where")).json()
    assert body["scheme"] == "http"
    assert body["url_for"].startswith("http://test/")
