"""
core/database.py -- Shared SQLAlchemy engine and schema for Yearbook.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py and
entries/models.py remain the authoritative domain representation. Swapping
SQLite for PostgreSQL is a connection string change, not a rewrite.

One Database (one Engine, one connection pool) per process. UserStore,
SessionStore and EntryStore all receive the same instance so session checks
and data reads see one consistent store. The tables live in a single
MetaData because annual_entries and sessions reference users by foreign key.

Connectivity:
  Database.connect() wraps engine.connect(). OperationalError (lost
  connection, statement timeout, locked database) and pool checkout timeouts
  are re-raised as core.errors.Transient. Everything else -- IntegrityError
  in particular -- propagates unchanged so stores can react to it.

SQLite:
  PRAGMA foreign_keys=ON is set per connection; without it the ON DELETE
  CASCADE clauses below are ignored. WAL mode lets readers proceed during
  writes. Both PRAGMAs must be set per connection because SQLite does not
  persist them on the database.

Layer rule: core/ is the kernel. No imports from api/, auth/, or entries/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import (
    JSON,
    Column,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from core.errors import Transient

logger = logging.getLogger("yearbook.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(254), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# sid is HMAC-SHA256(SESSION_SECRET, token) hex. The raw token only exists in
# the client's cookie, so a copy of this table cannot be replayed.
sessions = Table(
    "sessions",
    metadata,
    Column("sid", String(64), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("email", String(254), nullable=False),
    Column("created_at", Float, nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
)

annual_entries = Table(
    "annual_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("year", Integer, nullable=False),
    Column("payload", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("user_id", "year", name="uq_annual_entries_user_year"),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign keys and WAL journal mode on every new SQLite connection."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# Bare PostgreSQL URLs (Heroku and Render hand out postgres://) would load
# psycopg2 or fail outright under SQLAlchemy 2; the postgres extra ships psycopg 3.
_POSTGRES_SCHEMES = ("postgres://", "postgresql://")


def normalize_url(db_url: str) -> str:
    """Rewrite postgres:// and postgresql:// URLs to use the psycopg driver."""
    for scheme in _POSTGRES_SCHEMES:
        if db_url.startswith(scheme):
            return "postgresql+psycopg://" + db_url[len(scheme) :]
    return db_url


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class Database:
    """Owns the process-wide Engine and hands out connections.

    Usage:
        db = Database("postgresql+psycopg://user:pw@host/yearbook")
        db.create_schema()
        with db.connect() as conn:
            conn.execute(...)
            conn.commit()
        db.close()
    """

    def __init__(self, db_url: str, pool_size: int = 5, pool_timeout: int = 30) -> None:
        db_url = normalize_url(db_url)
        self.is_sqlite = db_url.startswith("sqlite")
        engine_args: dict = {}
        if self.is_sqlite:
            engine_args["connect_args"] = {"check_same_thread": False}
        else:
            engine_args.update(pool_size=pool_size, pool_timeout=pool_timeout, pool_pre_ping=True)
        self.engine: Engine = create_engine(db_url, **engine_args)
        if self.is_sqlite:
            event.listen(self.engine, "connect", _set_sqlite_pragmas)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def create_schema(self) -> None:
        """Create any missing tables. Safe to call on every startup."""
        with self.connect() as conn:
            metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except (OperationalError, PoolTimeoutError) as exc:
            logger.warning("Storage unavailable: %s", exc.__class__.__name__)
            raise Transient() from exc

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by the health endpoint."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Transient:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
