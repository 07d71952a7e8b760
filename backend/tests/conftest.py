"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- Database, HTTP client and authenticated user fixtures
- A mock language model client
"""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test_secret_key_at_least_32_characters_long_for_jwt"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "60"
os.environ["SENTIMENT_SCHEDULER_ENABLED"] = "false"
os.environ["LLM_BASE_URL"] = "http://localhost:11434/v1"
os.environ["LLM_MAX_RETRIES"] = "1"
os.environ["TAVILY_API_KEY"] = ""
os.environ["NEWS_API_KEY"] = ""
os.environ["GOOGLE_SEARCH_API_KEY"] = ""
os.environ["GOOGLE_SEARCH_ENGINE_ID"] = ""
os.environ["LOG_JSON"] = "false"

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture(scope="function")
async def db_session():
    """
    Provide a database session for tests.

    Creates tables before test and cleans up after.
    """
    from insightflow.core.database import engine, async_session_maker
    from insightflow.models.base import Base
    from insightflow import models  # noqa: F401 - register every table

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def mock_llm():
    """
    Language model client double.

    Every call returns an empty reply unless the test configures it.
    """
    from insightflow.services.interfaces.llm_client import ILLMClient

    client = AsyncMock(spec=ILLMClient)
    client.generate.return_value = ""
    client.generate_extended.return_value = ""
    client.generate_from_template.return_value = ""
    client.embed.return_value = []
    client.health_check.return_value = True
    return client


@pytest.fixture
def mock_scraper():
    """Scraper double that never reaches the network and finds nothing."""
    scraper = AsyncMock()
    scraper.extract_text_from_url.return_value = None
    return scraper


@pytest.fixture
async def client(db_session, mock_llm, mock_scraper):
    """
    HTTP client bound to the app with the model client and scraper overridden.

    Dependency overrides are cleared after the test.
    """
    from httpx import ASGITransport, AsyncClient

    from insightflow.api.dependencies import get_llm_client, get_scraper
    from insightflow.main import app

    app.dependency_overrides[get_llm_client] = lambda: mock_llm
    app.dependency_overrides[get_scraper] = lambda: mock_scraper
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
async def test_user(db_session):
    """Create a user directly in the database."""
    from insightflow.core.security import get_password_hash
    from insightflow.repositories.user import UserRepository

    user = await UserRepository(db_session).create_user(
        username="ada@example.com",
        email="ada@example.com",
        hashed_password=get_password_hash("correct-horse-battery"),
        first_name="Ada",
        last_name="Lovelace",
    )
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(test_user):
    """Bearer header for ``test_user``."""
    from insightflow.core.security import create_access_token

    token = create_access_token(data={"sub": test_user.username})
    return {"Authorization": f"Bearer {token}"}
