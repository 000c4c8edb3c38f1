"""
Shared pytest fixtures for the recurring event service tests.

Provides a throwaway SQLite database per test, a typed operations facade
bound to a default caller, and a Starlette TestClient for the HTTP layer.
"""

import os
import sys
from datetime import datetime
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    try:
        load_dotenv(env_path)
    except (OSError, IOError):
        pass

# Identity comes from request headers in development mode
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

from services.calendar.core.permissions import Identity
from services.calendar.database import Base, CalendarOperations


@pytest.fixture
def db_engine(tmp_path):
    """SQLAlchemy engine for a fresh SQLite database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'events.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(db_engine):
    """Session bound to the test database."""
    session = sessionmaker(bind=db_engine)()
    yield session
    session.close()


@pytest.fixture
def owner():
    """Identity of the user who creates events in most tests."""
    return Identity(user_id="u1")


@pytest.fixture
def ops(session, owner):
    """CalendarOperations acting as the default owner."""
    return CalendarOperations(session, owner)


@pytest.fixture
def weekly_standup(ops):
    """A weekly series created by u1 with u2 as participant."""
    return ops.create_event(
        title="Standup",
        description="Daily sync, weekly edition",
        start_time=datetime(2024, 1, 1, 9, 0),
        end_time=datetime(2024, 1, 1, 9, 15),
        participants=["u2"],
        recurrence="weekly",
    )


@pytest.fixture
def test_client(db_engine, monkeypatch):
    """Starlette TestClient with the full application."""
    from calendar_platform.api import auth
    from calendar_platform.api.main import create_app
    from calendar_platform.session import SessionManager

    monkeypatch.setattr(auth, "ENVIRONMENT", "development")

    app = create_app(session_manager=SessionManager(db_engine))
    with TestClient(app) as client:
        yield client
