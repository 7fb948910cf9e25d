"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in core/models.py -- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is stored already normalized (lower-cased, trimmed) -- the API layer
    normalizes before any lookup so the store can match exactly.

    confirm_code is the outstanding email-confirmation code and is cleared
    once the email is confirmed. reset_code / reset_expires_at describe an
    outstanding password reset, if any.

    unsubscribe_code is issued at sign-up and printed in outgoing mail;
    presenting it with the address sets do_not_email, which the mail worker
    must honour.
    """

    username: str
    email: str
    id: str | None = None
    hashed_password: str | None = None
    email_confirmed: bool = False
    real_name: str = ""
    linkedin: str = ""
    github: str = ""
    qualifications: str = ""
    confirm_code: str | None = None
    unsubscribe_code: str | None = None
    do_not_email: bool = False
    reset_code: str | None = None
    reset_expires_at: float | None = None
    created_at: str | None = None


@dataclass
class Session:
    """A server-side session binding.

    token is the raw value handed to the client in the session cookie. It is
    only populated on the Session returned by SessionStore.create(); records
    read back from the store carry the digest in token_hash and token == "".

    expires_at is epoch seconds and slides forward on every resolve.
    """

    user_id: str
    token_hash: str
    created_at: float
    expires_at: float
    token: str = ""
