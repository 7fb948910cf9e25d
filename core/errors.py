"""
core/errors.py -- Error taxonomy shared by every OpenAudit operation.

Core operations never raise for expected, client-caused failures. They return
a Failure value (tagged with an ErrorKind) alongside the normal success type,
and the API layer turns it into an HTTP response via AppError.

Every kind maps to an HTTP status, a stable numeric app_code and a generic
client-facing message. The message never carries internal detail; callers may
override it with a more specific (still client-safe) text, e.g. which audit
field was malformed.

Anything that is NOT a Failure (store errors, programming errors) propagates as
an ordinary exception and is rendered as a generic 500 by api/main.py.

Layer rule: no imports from api/, auth/, or documents/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHENTICATED = "unauthenticated"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    NOT_OWNER = "not_owner"
    SELF_AUDIT = "self_audit"
    AUDITING_DISABLED = "auditing_disabled"
    PRIVATE_DOCUMENT = "private_document"
    DOCUMENT_NOT_FOUND = "document_not_found"
    INVALID_AUDIT_VISIBILITY_COMBINATION = "invalid_audit_visibility_combination"
    MALFORMED_AUDIT_PAYLOAD = "malformed_audit_payload"
    THROTTLED = "throttled"
    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_EXISTS = "account_exists"
    DISPOSABLE_EMAIL = "disposable_email"
    INVALID_CONFIRMATION_CODE = "invalid_confirmation_code"
    INVALID_RESET_CODE = "invalid_reset_code"
    ALIAS_TAKEN = "alias_taken"


# kind -> (http status, app_code, client message)
_CATALOG: dict[ErrorKind, tuple[int, int, str]] = {
    ErrorKind.INVALID_CREDENTIALS: (401, 101, "Invalid email or password."),
    ErrorKind.UNAUTHENTICATED: (401, 102, "Authentication required."),
    ErrorKind.EMAIL_NOT_CONFIRMED: (403, 4, "Email Not Confirmed"),
    ErrorKind.NOT_OWNER: (403, 183, "You do not own this document."),
    ErrorKind.SELF_AUDIT: (400, 181, "Can't audit your own document."),
    ErrorKind.AUDITING_DISABLED: (400, 182, "Auditing not currently allowed for this document."),
    ErrorKind.PRIVATE_DOCUMENT: (400, 184, "Can't request audits for a private document."),
    ErrorKind.DOCUMENT_NOT_FOUND: (404, 180, "Document not found."),
    ErrorKind.INVALID_AUDIT_VISIBILITY_COMBINATION: (
        400,
        993,
        "Cannot set allowAudit to true if document visibility is private.",
    ),
    ErrorKind.MALFORMED_AUDIT_PAYLOAD: (400, 1238, "Malformed audit data."),
    ErrorKind.THROTTLED: (429, 429, "Too many attempts. Please try again later."),
    ErrorKind.USER_NOT_FOUND: (404, 106, "User not found."),
    ErrorKind.ACCOUNT_EXISTS: (409, 103, "An account with that username or email already exists."),
    ErrorKind.DISPOSABLE_EMAIL: (
        400,
        397,
        "Disposable emails are not allowed. If you think this is an error, please contact us.",
    ),
    ErrorKind.INVALID_CONFIRMATION_CODE: (400, 104, "Invalid confirmation code."),
    ErrorKind.INVALID_RESET_CODE: (400, 105, "Invalid or expired reset code."),
    ErrorKind.ALIAS_TAKEN: (409, 186, "That alias is already in use."),
}


@dataclass(frozen=True)
class Failure:
    """Tagged failure result of a core operation."""

    kind: ErrorKind
    detail: str | None = None  # client-safe override for the catalog message

    @property
    def status_code(self) -> int:
        return _CATALOG[self.kind][0]

    @property
    def app_code(self) -> int:
        return _CATALOG[self.kind][1]

    @property
    def message(self) -> str:
        return self.detail or _CATALOG[self.kind][2]


class AppError(Exception):
    """Raised at the request boundary to abort a route with a Failure.

    Only the API layer raises this; api/main.py renders it into the shared
    ErrorResponse envelope.
    """

    def __init__(self, failure: Failure) -> None:
        super().__init__(failure.message)
        self.failure = failure

    @classmethod
    def of(cls, kind: ErrorKind, detail: str | None = None) -> "AppError":
        return cls(Failure(kind, detail))
