"""
auth/passwords.py -- Password hashing and verification.

Passwords: bcrypt, used directly rather than through passlib. passlib's
internal wrap-bug detection builds a password longer than 72 bytes, which
current bcrypt releases reject outright. The cost factor comes from
Settings.bcrypt_rounds (default 12).

bcrypt only looks at the first 72 bytes of its input and current releases
raise on anything longer, so UserStore refuses such passwords at creation
(MAX_PASSWORD_BYTES) and verify_password() treats them as a mismatch.

Timing: bcrypt.checkpw compares digests in constant time. dummy_hash() gives
verify_credentials() something to check against when the email is unknown,
so a miss costs the same as a wrong password. UserStore computes it at
construction time, before the first login arrives.

Layer rule: no imports from api/ or entries/.
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt

from core.config import get_settings

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the plaintext password."""
    if rounds is None:
        rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Over-long password or a malformed stored hash.
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int) -> str:
    """Hash of a throwaway password at the given cost, computed once per cost."""
    return hash_password("yearbook_timing_dummy", rounds=rounds)
