"""Shared test fixtures for the Timekeeper test suite.

Tests run against a throwaway SQLite file (override with TEST_DATABASE_URL).
Every test starts from freshly created tables, so tests are isolated and
can be run in any order.
"""

import os
import tempfile

# Point the app at the test database before any app imports.
_TEST_DIR = tempfile.mkdtemp(prefix="timekeeper-tests-")
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}",
)
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "text"

import pytest
from fastapi.testclient import TestClient

from timekeeper.database import Base, SessionLocal, engine, get_db
from timekeeper.main import app


@pytest.fixture(autouse=True)
def _fresh_tables():
    """Recreate every table before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
