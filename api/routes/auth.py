"""
api/routes/auth.py -- Registration, login, logout and whoami endpoints.

Routes:
  POST /api/register   -- create account; sets session cookie
  POST /api/login      -- password login; sets session cookie
  POST /api/logout     -- destroys session; clears cookie; always 200
  GET  /api/me         -- {authenticated, email?}; never 401

Security:
  The session token is written only to the Set-Cookie header, never to the
  response body.
  Login failures return the same "Invalid email or password." for an unknown
  email and a wrong password; UserStore.verify_credentials() also equalizes
  their timing. Do NOT inline a lookup + verify here.
  Cache-Control: no-store on every auth response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, Credentials, MeResponse, OkResponse
from auth.cookies import clear_session_cookie, set_session_cookie
from auth.dependencies import get_gateway, optional_identity, session_token
from auth.gateway import AuthGateway
from auth.models import AuthResult, Identity

# Auth policy:
# - POST /api/register: public
# - POST /api/login:    public
# - POST /api/logout:   public -- ending a session needs no prior auth
# - GET  /api/me:       public -- reports anonymous callers as unauthenticated
router = APIRouter()


def _session_response(request: Request, result: AuthResult) -> JSONResponse:
    resp = JSONResponse(content=AuthResponse(email=result.email).model_dump())
    set_session_cookie(resp, result.token, request.app.state.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/register", response_model=AuthResponse)
def register(
    request: Request,
    body: Credentials,
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Create an account and log it in.

    400 for a missing/malformed email or a password shorter than 8 characters,
    409 if the email is already registered.
    """
    result = gateway.register(body.email, body.password, current_token=session_token(request))
    return _session_response(request, result)


@router.post("/login", response_model=AuthResponse)
def login(
    request: Request,
    body: Credentials,
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Authenticate with email and password; start a fresh session.

    400 if either field is missing, 401 with a generic message otherwise.
    """
    result = gateway.login(body.email, body.password, current_token=session_token(request))
    return _session_response(request, result)


@router.post("/logout", response_model=OkResponse)
def logout(request: Request, gateway: AuthGateway = Depends(get_gateway)) -> JSONResponse:
    """Destroy the caller's session (if any) and clear the cookie."""
    gateway.logout(session_token(request))
    resp = JSONResponse(content=OkResponse().model_dump())
    clear_session_cookie(resp, request.app.state.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/me", response_model=MeResponse, response_model_exclude_none=True)
def me(identity: Identity | None = Depends(optional_identity)) -> MeResponse:
    if identity is None:
        return MeResponse(authenticated=False)
    return MeResponse(authenticated=True, email=identity.email)
