"""
api/limiter.py -- Shared slowapi rate limiter instance.

This is the coarse, app-wide flood limit (Settings.default_rate_limit per
client address, every route). Per-action brute-force budgets are a separate,
stricter mechanism -- see auth/brute_force.py.

Using a single shared instance ensures all routes share the same in-memory
counter store.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[get_settings().default_rate_limit],
    storage_uri="memory://",
)
