"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session cookie is the only credential. It is resolved once per request
into an immutable Identity which is then passed to the route handler as an
argument; nothing is written back onto the request object.

optional_identity() is the soft variant: it returns None for anonymous
callers and also while session storage is unavailable.
require_auth() resolves strictly and raises Unauthorized if unauthenticated;
storage failures propagate as Transient (503).

FastAPI solves dependencies before it runs the route body, so a route that
declares `identity: Identity = Depends(require_auth)` cannot reach the entry
store for an anonymous caller.

Layer rule: no imports from api/ or entries/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.gateway import AuthGateway
from auth.models import Identity
from core.errors import Unauthorized


def get_gateway(request: Request) -> AuthGateway:
    return request.app.state.gateway


def session_token(request: Request) -> str | None:
    """Return the raw session token from the cookie, if the client sent one."""
    return request.cookies.get(request.app.state.settings.session_cookie_name)


def optional_identity(request: Request) -> Identity | None:
    """Resolve the session cookie. Returns None for anonymous callers; never raises."""
    return get_gateway(request).who_am_i(session_token(request))


def require_auth(request: Request) -> Identity:
    """Require a live session. Raises Unauthorized (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(require_auth)): ...
    """
    identity = get_gateway(request).authenticate(session_token(request))
    if identity is None:
        raise Unauthorized("Not authenticated.")
    return identity
