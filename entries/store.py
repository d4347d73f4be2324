"""
entries/store.py -- SQLAlchemy Core persistence for annual entries.

Pattern: Repository + Data Mapper (same as auth/store.py). EntryStore is the
repository; _row_to_entry is the mapper.

Ownership:
  Every method takes the user_id as its first argument and every query
  filters on it. Callers get that id from the Identity resolved by
  auth.dependencies.require_auth(), never from the request body or path.

Upsert:
  upsert_entry() is one INSERT ... ON CONFLICT (user_id, year) DO UPDATE
  statement. The database resolves concurrent writers to the same key with
  its own row lock, so the stored payload is always that of the last statement
  to commit. A SELECT-then-INSERT/UPDATE pair would lose updates under the
  same race. Both PostgreSQL and SQLite (3.24+) support the clause; SQLAlchemy
  exposes it through the dialect-specific insert() constructs.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite

from core.database import Database, annual_entries
from core.errors import InvalidInput, NotFound
from entries.models import AnnualEntry, YearSummary

logger = logging.getLogger("yearbook.entries")

MAX_YEAR = 9999

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_valid_year(year) -> bool:
    # bool is an int subclass; True must not mean year 1.
    return isinstance(year, int) and not isinstance(year, bool) and 0 < year <= MAX_YEAR


class EntryStore:
    """Repository for AnnualEntry records.

    Usage:
        store = EntryStore(db)
        store.upsert_entry(user_id, 2024, {"goal": "run"})
        entry = store.get_entry(user_id, 2024)
        years = store.list_years(user_id)
    """

    def __init__(self, db: Database) -> None:
        self.db = db
        try:
            self._insert = _DIALECT_INSERTS[db.dialect]
        except KeyError:
            raise ValueError(f"Unsupported database dialect for upserts: {db.dialect}") from None

    def list_years(self, user_id: int) -> list[YearSummary]:
        """Return the user's years, newest first. Empty list if there are none."""
        with self.db.connect() as conn:
            rows = conn.execute(
                select(annual_entries.c.year, annual_entries.c.updated_at)
                .where(annual_entries.c.user_id == user_id)
                .order_by(annual_entries.c.year.desc())
            ).fetchall()
        return [YearSummary(year=r.year, updated_at=r.updated_at) for r in rows]

    def get_entry(self, user_id: int, year: int) -> AnnualEntry:
        """Return the entry for (user_id, year). Raises NotFound if absent."""
        if not is_valid_year(year):
            raise NotFound("Not found.")
        with self.db.connect() as conn:
            row = conn.execute(
                annual_entries.select().where(
                    (annual_entries.c.user_id == user_id) & (annual_entries.c.year == year)
                )
            ).fetchone()
        if row is None:
            raise NotFound("Not found.")
        return _row_to_entry(row)

    def upsert_entry(self, user_id: int, year: int, payload: Any) -> None:
        """Insert or replace the payload for (user_id, year) in one atomic statement.

        New rows get created_at = updated_at = now. Existing rows get the new
        payload and updated_at = now; created_at is left alone.

        Raises InvalidInput if year is not in 1..9999 or payload is None.
        """
        if not is_valid_year(year) or payload is None:
            raise InvalidInput("Missing year/payload.")
        now = _now_iso()
        stmt = self._insert(annual_entries).values(
            user_id=user_id,
            year=year,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[annual_entries.c.user_id, annual_entries.c.year],
            set_={
                "payload": stmt.excluded.payload,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.db.connect() as conn:
            conn.execute(stmt)
            conn.commit()
        logger.debug("Upserted entry (user_id=%s, year=%s)", user_id, year)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_entry(row) -> AnnualEntry:
    return AnnualEntry(
        user_id=row.user_id,
        year=row.year,
        payload=row.payload,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
