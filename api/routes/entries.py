"""
api/routes/entries.py -- Per-user annual entry endpoints.

Routes:
  GET  /api/years          -- list the caller's years, newest first
  GET  /api/entry/{year}   -- fetch one entry; 404 if absent
  POST /api/entry/{year}   -- create or replace one entry

Every route depends on require_auth. FastAPI resolves that dependency before
the route body runs, so an anonymous request gets 401 without touching the
entry store. The user id passed to EntryStore always comes from the resolved
Identity.

The POST body is read by the _entry_payload dependency, which itself depends
on require_auth, so an anonymous request with a malformed body is still a 401.

{year} is taken as a string and parsed here so a non-numeric year is an
ordinary 404 (GET) or 400 (POST) rather than a 422 from path validation that
could outrank the 401.
"""

from __future__ import annotations

import re
from typing import Any

from fastapi import APIRouter, Depends, Request

from api.models import EntryResponse, EntryWrite, OkResponse, YearRow, YearsResponse
from auth.dependencies import require_auth
from auth.models import Identity
from core.errors import InvalidInput, NotFound
from entries.store import EntryStore, is_valid_year

# Auth policy: every route in this module requires auth (require_auth).
router = APIRouter()

_YEAR_RE = re.compile(r"^[0-9]{1,4}$")


def _parse_year(raw: str) -> int | None:
    if not _YEAR_RE.match(raw):
        return None
    year = int(raw)
    return year if is_valid_year(year) else None


def _entry_store(request: Request) -> EntryStore:
    return request.app.state.entry_store


async def _entry_payload(request: Request, identity: Identity = Depends(require_auth)) -> Any:
    try:
        body = EntryWrite.model_validate(await request.json())
    except ValueError:
        # Malformed JSON, bad UTF-8, or a pydantic ValidationError (a ValueError subclass).
        raise InvalidInput("Request body must be a JSON object.") from None
    return body.payload


@router.get("/years", response_model=YearsResponse)
def list_years(
    identity: Identity = Depends(require_auth),
    store: EntryStore = Depends(_entry_store),
) -> YearsResponse:
    rows = store.list_years(identity.user_id)
    return YearsResponse(years=[YearRow(year=r.year, updated_at=r.updated_at) for r in rows])


@router.get("/entry/{year}", response_model=EntryResponse)
def get_entry(
    year: str,
    identity: Identity = Depends(require_auth),
    store: EntryStore = Depends(_entry_store),
) -> EntryResponse:
    parsed = _parse_year(year)
    if parsed is None:
        raise NotFound("Not found.")
    entry = store.get_entry(identity.user_id, parsed)
    return EntryResponse(year=entry.year, payload=entry.payload, updated_at=entry.updated_at)


@router.post("/entry/{year}", response_model=OkResponse)
def upsert_entry(
    year: str,
    identity: Identity = Depends(require_auth),
    payload: Any = Depends(_entry_payload),
    store: EntryStore = Depends(_entry_store),
) -> OkResponse:
    """Store payload for the caller's year, replacing any previous payload."""
    parsed = _parse_year(year)
    if parsed is None:
        raise InvalidInput("Missing year/payload.")
    store.upsert_entry(identity.user_id, parsed, payload)
    return OkResponse()
