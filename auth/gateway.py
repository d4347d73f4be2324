"""
auth/gateway.py -- Register / login / logout / whoami on top of the two stores.

AuthGateway is the only code that creates or destroys sessions on behalf of a
client. Route handlers call it and translate the result into cookies; they do
not talk to SessionStore directly.

Session rotation:
  register() and login() destroy the session the client already holds (if
  any) before issuing a new one. A token is therefore never rebound from one
  user to another, and a token planted in a victim's browser before login is
  worthless afterwards.

Errors:
  Conflict / InvalidInput from UserStore.create_user propagate unchanged.
  login() raises the generic Unauthorized from verify_credentials; nothing is
  created or destroyed on that path.
  who_am_i() never fails: a storage outage is logged and reported as
  anonymous. authenticate() is the strict variant used to gate routes, where
  an outage must surface as Transient (503) rather than 401.

Layer rule: no imports from api/ or entries/.
"""

from __future__ import annotations

import logging

from auth.models import AuthResult, Identity
from auth.sessions import SessionStore
from auth.store import UserStore
from core.errors import InvalidInput, Transient

logger = logging.getLogger("yearbook.auth")


class AuthGateway:
    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    def register(self, email: str, password: str, current_token: str | None = None) -> AuthResult:
        user_id = self.users.create_user(email, password)
        return self._start_session(user_id, email, current_token)

    def login(self, email: str, password: str, current_token: str | None = None) -> AuthResult:
        if not email or not password:
            raise InvalidInput("Missing email/password.")
        user_id = self.users.verify_credentials(email, password)
        return self._start_session(user_id, email, current_token)

    def logout(self, token: str | None) -> None:
        """End the session for token. Succeeds whether or not it existed."""
        self.sessions.destroy(token)

    def authenticate(self, token: str | None) -> Identity | None:
        return self.sessions.resolve(token)

    def who_am_i(self, token: str | None) -> Identity | None:
        try:
            return self.sessions.resolve(token)
        except Transient:
            logger.warning("Session lookup failed; reporting caller as anonymous")
            return None

    def _start_session(self, user_id: int, email: str, current_token: str | None) -> AuthResult:
        if current_token:
            self.sessions.destroy(current_token)
        token = self.sessions.create(user_id, email)
        logger.info("Session started (user_id=%s)", user_id)
        return AuthResult(user_id=user_id, email=email, token=token)
