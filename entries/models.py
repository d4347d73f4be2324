"""
entries/models.py -- Domain dataclasses for annual entries.

Pattern: Data class (pure data container, zero logic). Mirrors auth/models.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class YearSummary:
    year: int
    updated_at: str


@dataclass
class AnnualEntry:
    """One user's document for one calendar year.

    payload is whatever JSON the client sent. The server never inspects it.
    """

    user_id: int
    year: int
    payload: Any
    created_at: str
    updated_at: str
