"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the gateway
do the work; these only carry shape.

Layer rule: no imports from api/ or entries/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is the login key and is stored exactly as submitted (case-sensitive).
    password_hash is a bcrypt hash; it never leaves the auth package.
    """

    email: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, resolved once per request from the session.

    Frozen so handlers cannot rebind a request to a different user after
    require_auth() has run.
    """

    user_id: int
    email: str


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful register or login.

    token is the raw session token. It goes into the Set-Cookie header and
    nowhere else -- never into a response body or a log line.
    """

    user_id: int
    email: str
    token: str
