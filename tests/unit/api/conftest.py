"""Fixtures for endpoint tests: the app over SQLite with a fixed session principal."""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from meterly import schemas
from meterly.api import deps
from meterly.core.shared_models import AuthMethod
from meterly.main import create_app
from tests.conftest import TEST_CRON_SECRET


@pytest.fixture
def app(test_settings, services, account):
    """The application wired to the test services; every session call is ``account``."""
    app = create_app(test_settings)
    app.state.services = services

    async def session_account():
        return schemas.Account.model_validate(account), AuthMethod.SYSTEM

    app.dependency_overrides[deps.get_session_account] = session_account
    return app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def cron_headers():
    """Headers of an authorized operator call."""
    return {"X-Cron-Secret": TEST_CRON_SECRET}
