"""
Pytest configuration for web unit tests.

Overrides the store and LLM dependencies so routes run against in-memory
stores and a mocked inference client.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.utils.config import Settings
from src.web.app import app
from src.web.dependencies import (
    get_llm_client,
    get_profile_store,
    get_settings,
    get_tracker_store,
)


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's .env file."""
    return Settings(github_token="test-token", cron_secret=None, _env_file=None)


@pytest.fixture
def llm():
    return AsyncMock()


@pytest.fixture
def client(memory_store, profile_memory_store, llm, test_settings):
    """Provide test client with store and LLM overrides."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_tracker_store] = lambda: memory_store
    app.dependency_overrides[get_profile_store] = lambda: profile_memory_store
    app.dependency_overrides[get_llm_client] = lambda: llm
    # Don't raise server exceptions - we want to test error responses
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
