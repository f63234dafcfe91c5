"""Pytest configuration and shared fixtures.

No test needs a live database: the schedule model is pure, and service
and endpoint tests run against a mocked AsyncSession.
"""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing app to use NullPool
os.environ["TESTING"] = "true"

from basal_tracker.config import settings

settings.testing = True

from basal_tracker.database import get_db
from basal_tracker.main import app


@pytest.fixture
def mock_db() -> AsyncMock:
    """AsyncSession stand-in; add() is synchronous on a real session."""
    db = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
async def client(mock_db) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with the database dependency overridden."""

    async def _override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)
