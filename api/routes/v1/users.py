"""
api/routes/v1/users.py -- Account, session and profile endpoints.

Routes:
  POST  /api/v1/user/signup               -- create unconfirmed account
  POST  /api/v1/user/confirm-email        -- confirm email with code
  POST  /api/v1/user/resend-confirm-code  -- issue a new confirmation code
  POST  /api/v1/user/signin               -- open a session; sets cookie
  POST  /api/v1/user/signout              -- destroy session; clears cookie
  GET   /api/v1/user/check                -- who am I (requires auth)
  GET   /api/v1/user/me                   -- private profile (requires auth)
  PATCH /api/v1/user/me                   -- update profile (requires auth)
  GET   /api/v1/user/profile/{username}   -- public profile
  POST  /api/v1/user/forgot-password      -- issue password reset code
  POST  /api/v1/user/reset-password       -- redeem reset code
  POST  /api/v1/user/do-not-email         -- opt an address out of mail

Security:
  Every unauthenticated write is charged against a per-action brute-force
  budget (auth/brute_force.py) before the body is even looked at.
  resend-confirm-code, forgot-password and do-not-email answer identically
  whether or not the email is registered.
  Cache-Control: no-store on sign-in responses.

Email delivery is outside this service. Issued codes are persisted on the user
record for the mail worker to pick up; they are never logged or returned.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.deps import unwrap
from api.models import (
    ConfirmEmailRequest,
    DoNotEmailRequest,
    EmailOnlyRequest,
    MessageResponse,
    PrivateProfile,
    ProfileUpdate,
    PublicProfile,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
)
from auth.dependencies import (
    brute_force,
    clear_session_cookie,
    get_current_user,
    session_token,
    set_session_cookie,
)
from auth.models import User
from auth.sessions import SessionAuthenticator
from auth.store import UserStore
from auth.tokens import (
    CONFIRM_CODE_LENGTH,
    RESET_CODE_LENGTH,
    UNSUBSCRIBE_CODE_LENGTH,
    generate_code,
    hash_password,
)
from core.config import get_settings
from core.errors import AppError, ErrorKind

logger = logging.getLogger("openaudit.api.users")

router = APIRouter()


def _users(request: Request) -> UserStore:
    return request.app.state.user_store


def _is_blocked_domain(domain: str, blocked: list[str]) -> bool:
    """True if domain is a blocked domain or any subdomain of one."""
    domain = domain.lower()
    return any(domain == b or domain.endswith("." + b) for b in blocked)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


@router.post("/user/signup", response_model=MessageResponse, dependencies=[Depends(brute_force("signup"))])
def signup(request: Request, body: SignUpRequest) -> MessageResponse:
    """Create an unconfirmed account and issue an email confirmation code."""
    domain = body.email.rsplit("@", 1)[-1]
    if _is_blocked_domain(domain, get_settings().blocked_email_domains):
        raise AppError.of(ErrorKind.DISPOSABLE_EMAIL)

    user = User(
        username=body.username,
        email=body.email,
        hashed_password=hash_password(body.password),
        confirm_code=generate_code(CONFIRM_CODE_LENGTH),
        unsubscribe_code=generate_code(UNSUBSCRIBE_CODE_LENGTH),
    )
    try:
        _users(request).create_user(user)
    except IntegrityError as exc:
        raise AppError.of(ErrorKind.ACCOUNT_EXISTS) from exc

    logger.info("Account %s created; confirmation code issued", user.id)
    return MessageResponse(code=1, message="Email Confirmation Sent")


@router.post(
    "/user/confirm-email",
    response_model=MessageResponse,
    dependencies=[Depends(brute_force("confirm-email"))],
)
def confirm_email(request: Request, body: ConfirmEmailRequest) -> MessageResponse:
    if not _users(request).confirm_email(body.email, body.code):
        raise AppError.of(ErrorKind.INVALID_CONFIRMATION_CODE)
    return MessageResponse(code=2, message="Email Confirmed")


@router.post(
    "/user/resend-confirm-code",
    response_model=MessageResponse,
    dependencies=[Depends(brute_force("resend-confirm-code"))],
)
def resend_confirm_code(request: Request, body: EmailOnlyRequest) -> MessageResponse:
    user_store = _users(request)
    user = user_store.get_by_email(body.email)
    if user is not None and not user.email_confirmed:
        user_store.set_confirm_code(user.id, generate_code(CONFIRM_CODE_LENGTH))
        logger.info("Confirmation code reissued for user %s", user.id)
    return MessageResponse(code=3, message="Email Confirmation Resent")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/user/signin", response_model=SignInResponse, dependencies=[Depends(brute_force("signin"))])
def signin(request: Request, body: SignInRequest) -> JSONResponse:
    """Verify credentials and open a new session.

    Any token the client already holds is replaced, never promoted, so a
    planted pre-login cookie cannot become an authenticated session.
    """
    authenticator: SessionAuthenticator = request.app.state.authenticator
    session = unwrap(authenticator.sign_in(body.email, body.password, session_token(request)))
    user = _users(request).get_by_id(session.user_id)

    resp = JSONResponse(content=SignInResponse(username=user.username).model_dump())
    set_session_cookie(resp, session.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/user/signout", response_model=MessageResponse, dependencies=[Depends(brute_force("signout"))])
def signout(request: Request) -> JSONResponse:
    """Destroy the current session. Succeeds whether or not one existed."""
    authenticator: SessionAuthenticator = request.app.state.authenticator
    authenticator.sign_out(session_token(request))
    resp = JSONResponse(content=MessageResponse(code=5, message="Signed out").model_dump())
    clear_session_cookie(resp)
    return resp


@router.get("/user/check", response_model=SignInResponse)
def check(current_user: User = Depends(get_current_user)) -> SignInResponse:
    return SignInResponse(message="Logged In", username=current_user.username)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@router.get("/user/me", response_model=PrivateProfile)
def get_private_profile(current_user: User = Depends(get_current_user)) -> PrivateProfile:
    return PrivateProfile(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        email_confirmed=current_user.email_confirmed,
        real_name=current_user.real_name,
        linkedin=current_user.linkedin,
        github=current_user.github,
        qualifications=current_user.qualifications,
        created_at=current_user.created_at or "",
    )


@router.patch("/user/me", response_model=MessageResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update.")
    _users(request).update_profile(current_user.id, **updates)
    return MessageResponse(code=9228, message="Updated successfully")


@router.get("/user/profile/{username}", response_model=PublicProfile)
def get_public_profile(request: Request, username: str) -> PublicProfile:
    user = _users(request).get_by_username(username)
    if user is None:
        raise AppError.of(ErrorKind.USER_NOT_FOUND)
    return PublicProfile(
        id=user.id,
        username=user.username,
        real_name=user.real_name,
        linkedin=user.linkedin,
        github=user.github,
        qualifications=user.qualifications,
    )


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@router.post(
    "/user/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(brute_force("forgot-password"))],
)
def forgot_password(request: Request, body: EmailOnlyRequest) -> MessageResponse:
    user_store = _users(request)
    user = user_store.get_by_email(body.email)
    if user is not None:
        user_store.set_reset_code(user.id, generate_code(RESET_CODE_LENGTH), get_settings().reset_code_ttl_seconds)
        logger.info("Password reset code issued for user %s", user.id)
    return MessageResponse(
        code=6,
        message="If there is an account associated with that email, a password reset email will be sent to it.",
    )


@router.post(
    "/user/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(brute_force("reset-password"))],
)
def reset_password(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    """Set a new password and sign the account out everywhere."""
    user_id = _users(request).reset_password(body.code, hash_password(body.new_password))
    if user_id is None:
        raise AppError.of(ErrorKind.INVALID_RESET_CODE)
    authenticator: SessionAuthenticator = request.app.state.authenticator
    authenticator.sessions.delete_for_user(user_id)
    logger.info("Password reset for user %s; existing sessions revoked", user_id)
    return MessageResponse(code=7, message="New password set successfully.")


# ---------------------------------------------------------------------------
# Mail opt-out
# ---------------------------------------------------------------------------


@router.post(
    "/user/do-not-email",
    response_model=MessageResponse,
    dependencies=[Depends(brute_force("do-not-email"))],
)
def do_not_email(request: Request, body: DoNotEmailRequest) -> MessageResponse:
    """Opt an address out of all mail using the code from an unsubscribe link."""
    if _users(request).set_do_not_email(body.email, body.code):
        logger.info("Address opted out of mail")
    return MessageResponse(code=7833, message="Success")
