"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

# Load environment variables from .env file at test startup
from dotenv import load_dotenv
load_dotenv()

from mailstate.config import Settings
from mailstate.store import Store

pytest_plugins = [
    "tests.fixtures.accounts",
    "tests.fixtures.backend",
]


@pytest.fixture
def settings():
    """Provide settings without waits so orchestration tests run instantly."""
    return Settings(
        confirm_timeout=0,
        reload_delay=0,
        test_result_display_seconds=0,
    )


@pytest.fixture
def store():
    """Provide a fresh store with the default initial state."""
    return Store()


@pytest.fixture
def mock_client():
    """Provide an AsyncMailClient stand-in whose sub-clients are AsyncMocks.

    Each sub-client method is an AsyncMock, so tests set ``return_value`` or
    ``side_effect`` on e.g. ``mock_client.accounts.test_connection``.
    """
    client = MagicMock()
    client.accounts = AsyncMock()
    client.emails = AsyncMock()
    client.search = AsyncMock()
    client.sync = AsyncMock()
    client.close = AsyncMock()
    return client
