"""
tests/conftest.py -- Shared test fixtures for Yearbook tests.

This module provides:
  - db / user_store / session_store / entry_store / gateway: stores on a
    fresh SQLite file per test
  - client: TestClient over the real FastAPI app with a patched lifespan
    wired to that same per-test database

Design: every test gets its own SQLite file under tmp_path. A file (rather
than an in-memory DB) is used because TestClient runs sync route handlers in
a thread pool and the concurrency tests open several connections at once;
all of them must see the same database.

Environment variables must be set before any api/ or core/ import:
get_settings() is read at import time by api/main.py. DEBUG=true lets
Settings auto-generate SESSION_SECRET; BCRYPT_ROUNDS=4 keeps hashing fast.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, init_state
from auth.gateway import AuthGateway
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.database import Database
from entries.store import EntryStore

PASSWORD = "password123"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db(tmp_path) -> Generator[Database, None, None]:
    database = Database(f"sqlite:///{tmp_path / 'yearbook.db'}")
    database.create_schema()
    yield database
    database.close()


@pytest.fixture
def user_store(db: Database) -> UserStore:
    return UserStore(db, bcrypt_rounds=4)


@pytest.fixture
def session_store(db: Database) -> SessionStore:
    return SessionStore(db, secret="s" * 32, max_age=3600)


@pytest.fixture
def entry_store(db: Database) -> EntryStore:
    return EntryStore(db)


@pytest.fixture
def gateway(user_store: UserStore, session_store: SessionStore) -> AuthGateway:
    return AuthGateway(user_store, session_store)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(db: Database):
    """Return a lifespan that wires the per-test database into app.state.

    No purge task: tests that care about expiry call purge_expired() directly.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app, db, get_settings())
        yield

    return test_lifespan


@pytest.fixture
def client(db: Database) -> Generator[TestClient, None, None]:
    """TestClient with its own cookie jar and its own database."""
    app.router.lifespan_context = _patch_lifespan(db)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client


def register(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/api/register", json={"email": email, "password": password})


def login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/api/login", json={"email": email, "password": password})
