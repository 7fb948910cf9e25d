"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as documents/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and authenticator code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  verify_credentials() always runs bcrypt, against DUMMY_HASH when the user
  has no usable hash, so timing does not reveal which emails are registered.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

import time

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, select
from sqlalchemy.engine import Engine

from auth.models import User
from auth.tokens import DUMMY_HASH, codes_match, verify_password
from core.db import make_engine
from core.ids import new_id, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("username", String(39), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text),
    Column("email_confirmed", Integer, nullable=False, server_default="0"),
    Column("confirm_code", String(64)),
    Column("reset_code", String(64)),
    Column("reset_expires_at", Float),  # epoch seconds
    Column("unsubscribe_code", String(64)),
    Column("do_not_email", Integer, nullable=False, server_default="0"),
    Column("real_name", String(69), nullable=False, server_default=""),
    Column("linkedin", String(299), nullable=False, server_default=""),
    Column("github", String(39), nullable=False, server_default=""),
    Column("qualifications", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
)

# Fields update_profile() is allowed to write.
PROFILE_FIELDS = frozenset({"real_name", "linkedin", "github", "qualifications"})


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///openaudit_auth.db")
        user = store.create_user(User(username="alice", email="a@example.com", hashed_password=hash_password("s3cret!")))
        user = store.get_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and created_at assigned.

        Raises sqlalchemy.exc.IntegrityError if the username or email already
        exists. Callers translate that into ACCOUNT_EXISTS.
        """
        user.id = user.id or new_id()
        user.created_at = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user.id,
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    email_confirmed=1 if user.email_confirmed else 0,
                    confirm_code=user.confirm_code,
                    unsubscribe_code=user.unsubscribe_code,
                    do_not_email=1 if user.do_not_email else 0,
                    real_name=user.real_name,
                    linkedin=user.linkedin,
                    github=user.github,
                    qualifications=user.qualifications,
                    created_at=user.created_at,
                )
            )
            conn.commit()
        return user

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def verify_credentials(self, user: User | None, password: str) -> bool:
        """Return True if password matches the user's stored hash.

        Accepts None so callers can pass the result of a failed lookup straight
        through and still pay the full bcrypt cost.
        """
        if user is None or not user.hashed_password:
            verify_password(password, DUMMY_HASH)
            return False
        return verify_password(password, user.hashed_password)

    # ------------------------------------------------------------------
    # Email confirmation
    # ------------------------------------------------------------------

    def set_confirm_code(self, user_id: str, code: str) -> None:
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(confirm_code=code))
            conn.commit()

    def confirm_email(self, email: str, code: str) -> bool:
        """Mark the email confirmed if code matches. Returns False otherwise.

        Confirming an already-confirmed address with any code is a no-op
        success, so a double-clicked confirmation link does not show an error.
        """
        user = self.get_by_email(email)
        if user is None:
            return False
        if user.email_confirmed:
            return True
        if not codes_match(user.confirm_code, code):
            return False
        with self.engine.connect() as conn:
            conn.execute(
                _users.update().where(_users.c.id == user.id).values(email_confirmed=1, confirm_code=None)
            )
            conn.commit()
        return True

    # ------------------------------------------------------------------
    # Mail opt-out
    # ------------------------------------------------------------------

    def set_do_not_email(self, email: str, code: str) -> bool:
        """Flag the account as opted out of mail if code is its unsubscribe code.

        Returns False for an unknown email or a wrong code. The flag is
        permanent; there is no opt back in through this path.
        """
        user = self.get_by_email(email)
        if user is None or not codes_match(user.unsubscribe_code, code):
            return False
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user.id).values(do_not_email=1))
            conn.commit()
        return True

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def set_reset_code(self, user_id: str, code: str, ttl_seconds: int) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(reset_code=code, reset_expires_at=time.time() + ttl_seconds)
            )
            conn.commit()

    def reset_password(self, code: str, hashed_password: str) -> str | None:
        """Replace the password of the user holding an unexpired reset code.

        Returns the user's id, or None if no unexpired code matched. The code
        is single-use: it is cleared in the same UPDATE that writes the new
        hash, and the WHERE clause re-checks it so two concurrent redemptions
        cannot both succeed.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_users.c.id).where((_users.c.reset_code == code) & (_users.c.reset_expires_at > time.time()))
            ).fetchone()
            if row is None:
                return None
            result = conn.execute(
                _users.update()
                .where((_users.c.id == row.id) & (_users.c.reset_code == code))
                .values(hashed_password=hashed_password, reset_code=None, reset_expires_at=None)
            )
            conn.commit()
        return row.id if result.rowcount > 0 else None

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(self, user_id: str, **fields) -> bool:
        """Update profile fields. Only keys in PROFILE_FIELDS are accepted.

        Unknown keys raise ValueError rather than being silently ignored.
        Returns True if a row was updated.
        """
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Cheap connectivity check for the health endpoint."""
        with self.engine.connect() as conn:
            conn.execute(_users.select().limit(1)).fetchall()
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        email_confirmed=bool(row.email_confirmed),
        confirm_code=row.confirm_code,
        reset_code=row.reset_code,
        reset_expires_at=row.reset_expires_at,
        unsubscribe_code=row.unsubscribe_code,
        do_not_email=bool(row.do_not_email),
        real_name=row.real_name or "",
        linkedin=row.linkedin or "",
        github=row.github or "",
        qualifications=row.qualifications or "",
        created_at=row.created_at,
    )
