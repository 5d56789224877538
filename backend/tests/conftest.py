"""Shared test setup: a throwaway SQLite fare table and no Redis."""

import os
import tempfile

import pytest

# Use a temporary database for testing
test_db = tempfile.NamedTemporaryFile(suffix='.db', delete=False)
os.environ["DATABASE_URL"] = f"sqlite:///{test_db.name}"
os.environ.pop("REDIS_URL", None)

from farecap.config import default_fare_config  # noqa: E402


@pytest.fixture
def config():
    """Standard two-zone fare table."""
    return default_fare_config()


@pytest.fixture
def fixed_config():
    """Standard fare table escalating caps by the fixed priority list."""
    return default_fare_config(cap_precedence="fixed")
