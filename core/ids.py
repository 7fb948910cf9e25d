"""
core/ids.py -- Clock and identifier helpers shared by every store.

Kept in one place so tests can reason about the id format and timestamp
format used across users, documents and audits.
"""

import secrets
import string
from datetime import datetime, timezone

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_id(length: int = 16) -> str:
    """Random lower-case alphanumeric id (user ids, document ids)."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
