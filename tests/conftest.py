"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
import tempfile

# ---------------------------------------------------------------------------
# Environment that must exist before any vouchboard import:
# - SESSION_SECRET is validated at module-load time by vouchboard.api.identity
# - VOUCHBOARD_UPLOAD_DIR is read once by vouchboard.services.upload_service
# ---------------------------------------------------------------------------
_TEST_SESSION_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("SESSION_SECRET", _TEST_SESSION_SECRET)
os.environ.setdefault("VOUCHBOARD_UPLOAD_DIR", tempfile.mkdtemp(prefix="vouchboard-uploads-"))

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from vouchboard.config import VouchboardConfig  # noqa: E402
from vouchboard.database.models import Base  # noqa: E402
from vouchboard.services.notification_service import NotificationRelay  # noqa: E402

TEST_GUILD_ID = "1000"


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Vouchboard tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def test_config() -> VouchboardConfig:
    return VouchboardConfig(guild_id=TEST_GUILD_ID, community_name="Test Community")


@pytest.fixture
def relay() -> MagicMock:
    """A relay double; routes only call ``publish``."""
    return MagicMock(spec=NotificationRelay)


def make_token(sub: str = "99999", username: str = "FixtureUser", is_admin: bool = False) -> str:
    """Create a signed principal token.  Usable as a factory in any test."""
    from vouchboard.api.identity import Principal, issue_token

    return issue_token(Principal(id=sub, display_name=username, is_admin=is_admin))


@pytest.fixture
def member_token() -> str:
    return make_token(sub="12345", username="Member")


@pytest.fixture
def admin_token() -> str:
    return make_token(sub="67890", username="Admin", is_admin=True)


@pytest.fixture
def client(db_engine, test_config, relay):
    """FastAPI TestClient wired to the SQLite engine and the relay double."""
    from fastapi.testclient import TestClient

    from vouchboard.api.deps import get_config, get_engine, get_relay
    from vouchboard.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    app.dependency_overrides[get_relay] = lambda: relay
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
