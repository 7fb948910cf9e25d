"""
auth/session_store.py -- TTL-bound server-side session records.

Each record binds a session token to a user id and carries an absolute expiry
(epoch seconds). Expired records are treated as absent on read and deleted
lazily; purge_expired() trims the rest and is run periodically by the API
lifespan task.

Records are keyed by HMAC-SHA256(SECRET_KEY, token), never by the raw token.

Usage:
    sessions = SessionStore("sqlite:///openaudit_auth.db", ttl=30 * 24 * 3600)
    session = sessions.create(user.id)      # session.token goes in the cookie
    session = sessions.get(token)           # None if missing or expired
    sessions.touch(session)                 # slide the expiry forward
    sessions.delete(token)
    sessions.purge_expired()

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

import time

from sqlalchemy import Column, Float, Index, MetaData, String, Table
from sqlalchemy.engine import Engine

from auth.models import Session
from auth.tokens import generate_session_token, hash_session_token
from core.db import make_engine

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("token_hash", String(64), primary_key=True),  # HMAC-SHA256 hex
    Column("user_id", String(32), nullable=False),
    Column("created_at", Float, nullable=False),
    Column("expires_at", Float, nullable=False),
    Index("ix_sessions_expires_at", "expires_at"),
)


class SessionStore:
    def __init__(self, db_url: str, ttl: int) -> None:
        self.ttl = ttl
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def create(self, user_id: str) -> Session:
        """Write a new session for user_id and return it with the raw token set.

        The INSERT is committed before this returns; any failure raises and no
        record is left behind.
        """
        token = generate_session_token()
        now = time.time()
        session = Session(
            user_id=user_id,
            token_hash=hash_session_token(token),
            created_at=now,
            expires_at=now + self.ttl,
            token=token,
        )
        with self.engine.begin() as conn:
            conn.execute(
                _sessions.insert().values(
                    token_hash=session.token_hash,
                    user_id=session.user_id,
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
        return session

    def get(self, token: str) -> Session | None:
        """Return the live session for token, or None if missing or expired."""
        token_hash = hash_session_token(token)
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token_hash == token_hash)).fetchone()
        if row is None:
            return None
        if row.expires_at <= time.time():
            self._delete_hash(token_hash)
            return None
        return Session(
            user_id=row.user_id,
            token_hash=row.token_hash,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def touch(self, session: Session) -> None:
        """Push the session's expiry to now + ttl (sliding expiry)."""
        session.expires_at = time.time() + self.ttl
        with self.engine.begin() as conn:
            conn.execute(
                _sessions.update()
                .where(_sessions.c.token_hash == session.token_hash)
                .values(expires_at=session.expires_at)
            )

    def delete(self, token: str) -> bool:
        """Delete the session for token. Returns False if there was none."""
        return self._delete_hash(hash_session_token(token))

    def delete_for_user(self, user_id: str) -> int:
        """Delete every session of user_id (e.g. after a password reset)."""
        with self.engine.begin() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
        return result.rowcount

    def purge_expired(self) -> int:
        """Delete all expired records. Returns number of rows removed."""
        with self.engine.begin() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= time.time()))
        return result.rowcount

    def _delete_hash(self, token_hash: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.token_hash == token_hash))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()
