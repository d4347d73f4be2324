"""
auth/sessions.py -- Server-side sessions persisted in the sessions table.

State machine per token: Anonymous -> Authenticated (create) -> Anonymous
(destroy, expiry, or deletion of the owning user). A row is never updated to
point at another user; changing users means destroying one session and
creating another.

Security design decisions:
  Tokens: secrets.token_urlsafe(32) -- 256 bits of entropy, sent to the
       client only as an httpOnly cookie.

  Storage key: HMAC-SHA256(SESSION_SECRET, token). Deterministic, so lookup is
       a primary-key hit; keyed, so a copy of the sessions table cannot be
       turned back into working cookies without also knowing the secret.

  resolve() never raises for bad input. Missing, malformed, unknown and
       expired tokens all come back as None; the gateway turns None into 401.
       Storage failures still raise Transient -- those are not "bad tokens".

Layer rule: no imports from api/ or entries/.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time

from auth.models import Identity
from core.database import Database, sessions

logger = logging.getLogger("yearbook.auth")

# token_urlsafe(32) yields 43 characters. Anything far longer is not ours and
# is rejected before hashing.
_MAX_TOKEN_LENGTH = 256


class SessionStore:
    """Create, resolve and destroy sessions.

    Usage:
        store = SessionStore(db, secret=settings.session_secret, max_age=86400)
        token = store.create(user_id, "alice@example.com")
        identity = store.resolve(token)     # Identity or None
        store.destroy(token)
    """

    def __init__(self, db: Database, secret: str, max_age: int = 24 * 60 * 60) -> None:
        self.db = db
        self.max_age = max_age
        self._secret = secret.encode("utf-8")

    def _sid(self, token: str) -> str:
        return hmac.new(self._secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def _well_formed(token) -> bool:
        return isinstance(token, str) and 0 < len(token) <= _MAX_TOKEN_LENGTH

    def create(self, user_id: int, email: str) -> str:
        """Persist a new session bound to user_id and return its raw token."""
        token = secrets.token_urlsafe(32)
        now = time.time()
        with self.db.connect() as conn:
            conn.execute(
                sessions.insert().values(
                    sid=self._sid(token),
                    user_id=user_id,
                    email=email,
                    created_at=now,
                    expires_at=now + self.max_age,
                )
            )
            conn.commit()
        return token

    def resolve(self, token) -> Identity | None:
        """Return the Identity bound to token, or None if it is not a live session."""
        if not self._well_formed(token):
            return None
        sid = self._sid(token)
        with self.db.connect() as conn:
            row = conn.execute(sessions.select().where(sessions.c.sid == sid)).fetchone()
            if row is None:
                return None
            if row.expires_at <= time.time():
                conn.execute(sessions.delete().where(sessions.c.sid == sid))
                conn.commit()
                return None
        return Identity(user_id=row.user_id, email=row.email)

    def destroy(self, token) -> None:
        """Delete the session for token. Unknown or malformed tokens are a no-op."""
        if not self._well_formed(token):
            return
        with self.db.connect() as conn:
            conn.execute(sessions.delete().where(sessions.c.sid == self._sid(token)))
            conn.commit()

    def purge_expired(self) -> int:
        """Delete every expired session. Returns the number of rows removed."""
        with self.db.connect() as conn:
            result = conn.execute(sessions.delete().where(sessions.c.expires_at <= time.time()))
            conn.commit()
        if result.rowcount:
            logger.info("Purged %d expired session(s)", result.rowcount)
        return result.rowcount
