"""
auth/brute_force.py -- Per-action attempt budgets keyed by client identity.

Built on the `limits` package (the engine underneath slowapi). The storage
backend is injected, so counters live wherever the deployment wants them
(memory:// for a single process, redis:// when several workers must share
budgets). The backend's atomic increment keeps concurrent requests for the
same key from racing.

Every check() consumes one attempt, whether or not the request that follows
succeeds -- invalid and failed attempts count against the budget too. Counters
use a fixed window and expire on their own when it elapses.

Budgets per action come from Settings.brute_force_budgets; actions never share
a counter, so burning the sign-in budget leaves sign-up untouched.
"""

from __future__ import annotations

import logging

from limits import RateLimitItemPerSecond
from limits.storage import Storage
from limits.strategies import FixedWindowRateLimiter

from core.errors import ErrorKind
from core.policy import ALLOW, Decision, deny

logger = logging.getLogger("openaudit.auth")

_NAMESPACE = "bruteforce"


class BruteForceGuard:
    def __init__(self, storage: Storage, budgets: dict[str, int], window_seconds: int) -> None:
        self._limiter = FixedWindowRateLimiter(storage)
        self._items = {
            action: RateLimitItemPerSecond(budget, window_seconds, namespace=_NAMESPACE)
            for action, budget in budgets.items()
        }

    def check(self, action: str, client_key: str) -> Decision:
        """Record one attempt at action from client_key; deny once over budget.

        Raises ValueError for an action with no configured budget.
        """
        item = self._items.get(action)
        if item is None:
            raise ValueError(f"No brute-force budget configured for action {action!r}")
        if self._limiter.hit(item, action, client_key):
            return ALLOW
        logger.warning("Throttled %s attempt from %s", action, client_key)
        return deny(ErrorKind.THROTTLED)
