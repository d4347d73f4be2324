"""
auth/store.py -- Credential store: SQLAlchemy Core access to the users table.

Pattern: Repository + Data Mapper (same as entries/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and gateway
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  verify_credentials() raises one generic Unauthorized for both "no such
  email" and "wrong password", and runs bcrypt in both cases so the response
  time does not reveal which one happened.

  Email uniqueness is enforced by the UNIQUE constraint. The pre-insert lookup
  only produces a friendlier path for the common case; two concurrent
  registrations for the same email still end in exactly one row, and the
  loser's IntegrityError is reported as Conflict.

Layer rule: no imports from api/ or entries/.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.passwords import (
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    dummy_hash,
    hash_password,
    verify_password,
)
from core.database import Database, users
from core.errors import Conflict, InvalidInput, Unauthorized

logger = logging.getLogger("yearbook.auth")

# local@domain.tld, no whitespace, one "@". Deliberately loose: the address is
# a login key, not a mailbox we deliver to.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_EMAIL_LENGTH = 254


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_email(email) -> str:
    if not isinstance(email, str) or not email:
        raise InvalidInput("Missing email/password.")
    if len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(email):
        raise InvalidInput("Email address is not valid.")
    return email


def validate_new_password(password) -> str:
    if not isinstance(password, str) or not password:
        raise InvalidInput("Missing email/password.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    return password


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore(db)
        user_id = store.create_user("alice@example.com", "password123")
        store.verify_credentials("alice@example.com", "password123")  # -> user_id
    """

    def __init__(self, db: Database, bcrypt_rounds: int = 12) -> None:
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds
        # Hashed now so the first unknown-email login does not pay for a hashpw.
        self._dummy_hash = dummy_hash(bcrypt_rounds)

    # ------------------------------------------------------------------
    # Credential operations
    # ------------------------------------------------------------------

    def create_user(self, email: str, password: str) -> int:
        """Validate, hash and insert a new user. Returns the new user id.

        Raises InvalidInput for a missing/malformed email or a password outside
        8 characters .. 72 bytes, and Conflict if the email is already taken.
        """
        email = validate_email(email)
        password = validate_new_password(password)
        if self.get_by_email(email) is not None:
            raise Conflict("Email already exists.")

        password_hash = hash_password(password, rounds=self.bcrypt_rounds)
        try:
            with self.db.connect() as conn:
                result = conn.execute(
                    users.insert().values(email=email, password_hash=password_hash, created_at=_now_iso())
                )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict("Email already exists.") from exc
        user_id = result.inserted_primary_key[0]
        logger.info("User created (id=%s)", user_id)
        return user_id

    def verify_credentials(self, email: str, password: str) -> int:
        """Return the user id if email and password match, else raise Unauthorized.

        Always runs exactly one bcrypt comparison. Do NOT return early for an
        unknown email -- that reintroduces the timing side channel.
        """
        user = self.get_by_email(email) if isinstance(email, str) else None
        if not isinstance(password, str):
            password = ""
        if user is None:
            verify_password(password, self._dummy_hash)
            raise Unauthorized("Invalid email or password.")
        if not verify_password(password, user.password_hash):
            raise Unauthorized("Invalid email or password.")
        return user.id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.db.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.db.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        with self.db.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users)).scalar()
        return result or 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        Sessions and annual entries go with it through ON DELETE CASCADE.
        """
        with self.db.connect() as conn:
            result = conn.execute(users.delete().where(users.c.id == user_id))
            conn.commit()
        if result.rowcount > 0:
            logger.info("User deleted (id=%s)", user_id)
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
