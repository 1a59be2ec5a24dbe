import os

# must be set before src.main builds its module-level app
os.environ.setdefault("IS_TESTING", "true")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.bootstrap.container import build_services
from tests.helpers import build_test_app, make_settings


@pytest.fixture
def settings(tmp_path):
    return make_settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
async def services(settings):
    svc = build_services(settings)
    await svc.database.create_tables()
    yield svc
    await svc.database.dispose()


@pytest.fixture
def app(services) -> FastAPI:
    return build_test_app(services)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
