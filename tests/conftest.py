"""Shared pytest fixtures and configuration."""

import os
import pytest
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from tests.utils.fake_supabase import FakeSupabase  # noqa: E402
from tests.utils.seed_data import FROZEN_NOW, seed_tables  # noqa: E402


@pytest.fixture
def fake_db(monkeypatch):
    """In-memory Supabase installed as the client singleton."""
    db = FakeSupabase(seed_tables())
    monkeypatch.setattr("agencyops.services.supabase_client._client", db)
    return db


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time(FROZEN_NOW) as frozen_time:
        yield frozen_time


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
