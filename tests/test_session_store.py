"""Unit tests for auth/sessions.py -- server-side session lifecycle.

Covers:
- create() -> resolve() returns the bound identity
- tokens are random and only their HMAC is persisted
- resolve() returns None for missing, malformed, unknown and expired tokens
- destroy() is idempotent
- purge_expired() and cascade on user deletion
"""

import time

import pytest
from sqlalchemy import select

from auth.models import Identity
from auth.sessions import SessionStore
from auth.store import UserStore
from core.database import Database, sessions


@pytest.fixture
def alice(user_store: UserStore) -> int:
    return user_store.create_user("alice@example.com", "password123")


def _session_rows(db: Database) -> list:
    with db.connect() as conn:
        return conn.execute(select(sessions)).fetchall()


class TestCreateResolve:
    def test_round_trip(self, session_store: SessionStore, alice: int) -> None:
        token = session_store.create(alice, "alice@example.com")
        assert session_store.resolve(token) == Identity(user_id=alice, email="alice@example.com")

    def test_tokens_are_unique(self, session_store: SessionStore, alice: int) -> None:
        tokens = {session_store.create(alice, "alice@example.com") for _ in range(5)}
        assert len(tokens) == 5

    def test_raw_token_is_not_stored(self, db: Database, session_store: SessionStore, alice: int) -> None:
        token = session_store.create(alice, "alice@example.com")
        rows = _session_rows(db)
        assert len(rows) == 1
        assert rows[0].sid != token
        assert token not in rows[0].sid

    def test_different_secret_cannot_resolve(self, db: Database, session_store: SessionStore, alice: int) -> None:
        token = session_store.create(alice, "alice@example.com")
        other = SessionStore(db, secret="o" * 32)
        assert other.resolve(token) is None

    @pytest.mark.parametrize("token", [None, "", 42, "x" * 1000, "not-a-real-token"])
    def test_bad_tokens_resolve_to_none(self, session_store: SessionStore, alice: int, token) -> None:
        session_store.create(alice, "alice@example.com")
        assert session_store.resolve(token) is None

    def test_expired_session_is_anonymous_and_removed(self, db: Database, user_store: UserStore) -> None:
        uid = user_store.create_user("bob@example.com", "password123")
        short = SessionStore(db, secret="s" * 32, max_age=1)
        token = short.create(uid, "bob@example.com")
        with db.connect() as conn:
            conn.execute(sessions.update().values(expires_at=time.time() - 10))
            conn.commit()
        assert short.resolve(token) is None
        assert _session_rows(db) == []


class TestDestroy:
    def test_destroy_logs_out(self, session_store: SessionStore, alice: int) -> None:
        token = session_store.create(alice, "alice@example.com")
        session_store.destroy(token)
        assert session_store.resolve(token) is None

    def test_destroy_is_idempotent(self, session_store: SessionStore, alice: int) -> None:
        token = session_store.create(alice, "alice@example.com")
        session_store.destroy(token)
        session_store.destroy(token)
        session_store.destroy("never-issued")
        session_store.destroy(None)

    def test_destroy_only_touches_one_session(self, session_store: SessionStore, alice: int) -> None:
        first = session_store.create(alice, "alice@example.com")
        second = session_store.create(alice, "alice@example.com")
        session_store.destroy(first)
        assert session_store.resolve(second) is not None


class TestPurgeAndCascade:
    def test_purge_expired_removes_only_expired(self, db: Database, session_store: SessionStore, alice: int) -> None:
        live = session_store.create(alice, "alice@example.com")
        stale = session_store.create(alice, "alice@example.com")
        with db.connect() as conn:
            conn.execute(
                sessions.update().where(sessions.c.sid == session_store._sid(stale)).values(expires_at=time.time() - 1)
            )
            conn.commit()
        assert session_store.purge_expired() == 1
        assert session_store.resolve(live) is not None
        assert session_store.purge_expired() == 0

    def test_deleting_user_removes_sessions(
        self, session_store: SessionStore, user_store: UserStore, alice: int
    ) -> None:
        token = session_store.create(alice, "alice@example.com")
        user_store.delete_user(alice)
        assert session_store.resolve(token) is None
