"""
auth/cookies.py -- Session cookie helpers.

httponly=True: JS cannot read the cookie (XSS mitigation).
samesite="lax": cookie sent on same-site requests and top-level GET
    navigations, but not on cross-site POST -- CSRF mitigation for the
    state-changing endpoints, which are all POST.
secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
max_age: matches the server-side session lifetime so both expire together.

Layer rule: no imports from api/ or entries/.
"""

from __future__ import annotations

from core.config import Settings


def set_session_cookie(response, token: str, settings: Settings) -> None:
    """Write the raw session token as an httpOnly cookie on the response."""
    response.set_cookie(
        settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_max_age,
    )


def clear_session_cookie(response, settings: Settings) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
