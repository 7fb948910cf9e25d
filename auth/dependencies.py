"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token travels in a single httpOnly cookie (Settings.session_cookie_name).
try_get_current_user() resolves it once per request and caches the identity on
request.state.user so later dependencies and the route see the same answer.

try_get_current_user() is the soft variant (returns None when anonymous).
get_current_user() wraps it and raises UNAUTHENTICATED.
brute_force(action) builds a dependency that spends one attempt of the named
action's budget for the client's address.

Layer rule: no imports from documents/.
  auth/dependencies.py may import from fastapi (for Request) and slowapi
  (for client address extraction) because it is part of the FastAPI dependency
  injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request
from slowapi.util import get_remote_address

from auth.brute_force import BruteForceGuard
from auth.models import User
from auth.sessions import SessionAuthenticator
from core.config import get_settings
from core.errors import AppError, Failure

_UNSET = object()


def session_token(request: Request) -> str | None:
    return request.cookies.get(get_settings().session_cookie_name)


def try_get_current_user(request: Request) -> User | None:
    """Resolve the session cookie to a User, or None. Never raises for bad tokens."""
    cached = getattr(request.state, "user", _UNSET)
    if cached is not _UNSET:
        return cached
    authenticator: SessionAuthenticator = request.app.state.authenticator
    user = authenticator.resolve(session_token(request))
    request.state.user = user
    return user


def get_current_user(request: Request) -> User:
    """Require a signed-in user.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    result = SessionAuthenticator.require_authenticated(try_get_current_user(request))
    if isinstance(result, Failure):
        raise AppError(result)
    return result


def brute_force(action: str) -> Callable[[Request], None]:
    """Return a dependency that charges one attempt at action to the client address.

    Use as a route dependency:
        @router.post("/user/signin", dependencies=[Depends(brute_force("signin"))])
    """

    def _check(request: Request) -> None:
        guard: BruteForceGuard = request.app.state.brute_force
        decision = guard.check(action, get_remote_address(request))
        if not decision:
            raise AppError(decision.failure())

    return _check


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str) -> None:
    """Write the session token cookie on the response.

    httponly: JS cannot read the cookie (XSS mitigation).
    samesite="strict": never sent on cross-site requests (CSRF mitigation).
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the session record's sliding lifetime.
    """
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
        max_age=settings.session_max_age_seconds,
        domain=settings.cookie_domain or None,
    )


def clear_session_cookie(response) -> None:
    settings = get_settings()
    response.delete_cookie(settings.session_cookie_name, domain=settings.cookie_domain or None)
