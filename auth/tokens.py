"""
auth/tokens.py -- Password hashing, session token and one-time code utilities.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). Bcrypt's cost factor makes
       brute-force expensive for low-entropy secrets. _DUMMY_HASH enables timing
       equalization in UserStore.verify_credentials() so response time does not
       reveal whether an email is registered.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. The
       store keeps HMAC-SHA256(SECRET_KEY, token) only, so a leaked sessions
       table cannot be replayed as cookies. The hash is deterministic, so lookup
       by token stays O(1).

  Codes: email-confirmation and password-reset codes are alphanumeric so they
       survive being pasted from an email client.

Layer rule: no imports from api/ or documents/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string

import bcrypt

from core.config import get_settings

_CODE_ALPHABET = string.ascii_letters + string.digits

CONFIRM_CODE_LENGTH = 8
RESET_CODE_LENGTH = 32
UNSUBSCRIBE_CODE_LENGTH = 16

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates at 72 bytes; the API layer caps password length well
    below anything that matters in practice.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first sign-in attempt is not measurably
# slower than later ones.
DUMMY_HASH: str = hash_password("openaudit_timing_dummy")


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, token) as a hex string."""
    return hmac.new(
        get_settings().secret_key.encode(),
        token.encode(),
        hashlib.sha256,
    ).hexdigest()


# ---------------------------------------------------------------------------
# One-time codes
# ---------------------------------------------------------------------------


def generate_code(length: int) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def codes_match(expected: str | None, supplied: str) -> bool:
    """Constant-time comparison that treats a missing expected code as a mismatch."""
    if not expected:
        return False
    return hmac.compare_digest(expected.encode(), supplied.encode())
