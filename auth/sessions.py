"""
auth/sessions.py -- Session-based authentication state machine.

Per session token: Anonymous -> Authenticated -> (Destroyed | Expired).

SessionAuthenticator receives its stores explicitly; there is no module-level
session state. Expected failures (bad credentials, unconfirmed email, not
signed in) come back as Failure values. Store failures raise and are rendered
as a generic internal error by the API layer.

Session fixation: sign_in() never reuses the caller's pre-auth token. A new
record is committed first and only then is the old token deleted, so a
concurrent request never sees the user logged out between the two steps.
"""

from __future__ import annotations

import logging

from auth.models import Session, User
from auth.session_store import SessionStore
from auth.store import UserStore
from core.errors import ErrorKind, Failure

logger = logging.getLogger("openaudit.auth")


class SessionAuthenticator:
    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    def sign_in(self, email: str, password: str, current_token: str | None = None) -> Session | Failure:
        """Verify credentials and open a fresh session.

        email must already be normalized by the caller.
        """
        user = self.users.get_by_email(email)
        if not self.users.verify_credentials(user, password):
            logger.info("Sign-in rejected: invalid credentials")
            return Failure(ErrorKind.INVALID_CREDENTIALS)
        if not user.email_confirmed:
            logger.info("Sign-in rejected: email not confirmed for user %s", user.id)
            return Failure(ErrorKind.EMAIL_NOT_CONFIRMED)

        session = self.sessions.create(user.id)
        if current_token:
            try:
                self.sessions.delete(current_token)
            except Exception:
                # Roll the new session back so the attempt fails as a whole.
                self.sessions.delete(session.token)
                raise
        logger.info("User %s signed in", user.id)
        return session

    def resolve(self, token: str | None) -> User | None:
        """Return the user bound to token, or None for an anonymous request."""
        if not token:
            return None
        session = self.sessions.get(token)
        if session is None:
            return None
        user = self.users.get_by_id(session.user_id)
        if user is None:
            logger.warning("Session bound to missing user %s; discarding", session.user_id)
            self.sessions.delete(token)
            return None
        self.sessions.touch(session)
        return user

    def sign_out(self, token: str | None) -> None:
        """Destroy the session. Never fails from the caller's point of view."""
        if not token:
            return
        try:
            self.sessions.delete(token)
        except Exception:
            logger.exception("Couldn't delete session")

    @staticmethod
    def require_authenticated(user: User | None) -> User | Failure:
        if user is None:
            return Failure(ErrorKind.UNAUTHENTICATED)
        return user
