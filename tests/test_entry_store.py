"""Unit tests for entries/store.py -- per-user yearly documents.

Covers:
- upsert -> get round trip and last-write-wins
- created_at preserved, updated_at advanced on update
- list_years ordering and the empty case
- isolation between users for the same year
- input validation (year, payload)
- concurrent upserts to one key leave exactly one row
- cascade delete with the owning user
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest
from sqlalchemy import func, select

from auth.store import UserStore
from core.database import Database, annual_entries
from core.errors import InvalidInput, NotFound
from entries.store import EntryStore


@pytest.fixture
def alice(user_store: UserStore) -> int:
    return user_store.create_user("alice@example.com", "password123")


@pytest.fixture
def bob(user_store: UserStore) -> int:
    return user_store.create_user("bob@example.com", "password123")


def _row_count(db: Database, user_id: int, year: int) -> int:
    with db.connect() as conn:
        return conn.execute(
            select(func.count())
            .select_from(annual_entries)
            .where((annual_entries.c.user_id == user_id) & (annual_entries.c.year == year))
        ).scalar()


class TestUpsertAndGet:
    def test_round_trip_nested_payload(self, entry_store: EntryStore, alice: int) -> None:
        payload = {"goal": "run", "months": [{"name": "jan", "km": 42.5}], "done": False, "notes": None}
        entry_store.upsert_entry(alice, 2024, payload)
        entry = entry_store.get_entry(alice, 2024)
        assert entry.year == 2024
        assert entry.payload == payload

    def test_last_write_wins(self, db: Database, entry_store: EntryStore, alice: int) -> None:
        entry_store.upsert_entry(alice, 2024, {"v": 1})
        first = entry_store.get_entry(alice, 2024)
        entry_store.upsert_entry(alice, 2024, {"v": 2})
        second = entry_store.get_entry(alice, 2024)

        assert second.payload == {"v": 2}
        assert second.created_at == first.created_at
        assert datetime.fromisoformat(second.updated_at) > datetime.fromisoformat(first.updated_at)
        assert _row_count(db, alice, 2024) == 1

    def test_new_entry_timestamps_match(self, entry_store: EntryStore, alice: int) -> None:
        entry_store.upsert_entry(alice, 2023, {"a": 1})
        entry = entry_store.get_entry(alice, 2023)
        assert entry.created_at == entry.updated_at

    def test_missing_entry_is_not_found(self, entry_store: EntryStore, alice: int) -> None:
        with pytest.raises(NotFound):
            entry_store.get_entry(alice, 2022)

    @pytest.mark.parametrize("year", [0, -1, None, True, "2024", 10000])
    def test_bad_year_is_invalid(self, entry_store: EntryStore, alice: int, year) -> None:
        with pytest.raises(InvalidInput):
            entry_store.upsert_entry(alice, year, {"a": 1})

    def test_missing_payload_is_invalid(self, entry_store: EntryStore, alice: int) -> None:
        with pytest.raises(InvalidInput):
            entry_store.upsert_entry(alice, 2024, None)

    @pytest.mark.parametrize("payload", [{}, [], 0, "", False])
    def test_falsy_json_values_are_stored(self, entry_store: EntryStore, alice: int, payload) -> None:
        """Only an absent payload is rejected; empty or falsy JSON documents are still documents."""
        entry_store.upsert_entry(alice, 2024, payload)
        assert entry_store.get_entry(alice, 2024).payload == payload


class TestListYears:
    def test_empty_for_new_user(self, entry_store: EntryStore, alice: int) -> None:
        assert entry_store.list_years(alice) == []

    def test_descending_by_year(self, entry_store: EntryStore, alice: int) -> None:
        for year in (2021, 2024, 2019, 2023):
            entry_store.upsert_entry(alice, year, {"y": year})
        years = entry_store.list_years(alice)
        assert [y.year for y in years] == [2024, 2023, 2021, 2019]
        assert all(y.updated_at for y in years)


class TestIsolation:
    def test_same_year_different_users(self, entry_store: EntryStore, alice: int, bob: int) -> None:
        entry_store.upsert_entry(alice, 2024, {"owner": "alice"})
        entry_store.upsert_entry(bob, 2024, {"owner": "bob"})
        assert entry_store.get_entry(alice, 2024).payload == {"owner": "alice"}
        assert entry_store.get_entry(bob, 2024).payload == {"owner": "bob"}

    def test_other_users_years_are_invisible(self, entry_store: EntryStore, alice: int, bob: int) -> None:
        entry_store.upsert_entry(alice, 2020, {"owner": "alice"})
        assert entry_store.list_years(bob) == []
        with pytest.raises(NotFound):
            entry_store.get_entry(bob, 2020)


class TestConcurrency:
    def test_concurrent_upserts_single_row(self, db: Database, entry_store: EntryStore, alice: int) -> None:
        payloads = [{"writer": i} for i in range(16)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda p: entry_store.upsert_entry(alice, 2024, p), payloads))

        assert _row_count(db, alice, 2024) == 1
        assert entry_store.get_entry(alice, 2024).payload in payloads

    def test_different_keys_do_not_interfere(self, entry_store: EntryStore, alice: int, bob: int) -> None:
        jobs = [(uid, year) for uid in (alice, bob) for year in range(2000, 2010)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda job: entry_store.upsert_entry(job[0], job[1], {"k": list(job)}), jobs))

        for uid, year in jobs:
            assert entry_store.get_entry(uid, year).payload == {"k": [uid, year]}


class TestCascade:
    def test_deleting_user_removes_entries(
        self, db: Database, entry_store: EntryStore, user_store: UserStore, alice: int
    ) -> None:
        entry_store.upsert_entry(alice, 2024, {"a": 1})
        entry_store.upsert_entry(alice, 2023, {"a": 2})
        user_store.delete_user(alice)
        assert entry_store.list_years(alice) == []
        with db.connect() as conn:
            assert conn.execute(select(func.count()).select_from(annual_entries)).scalar() == 0
