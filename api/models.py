"""
API request and response models for OpenAudit REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Request models do shape validation only (lengths, patterns, enums). Audit
payload item rules live in core/validation.py so they are enforced the same
way no matter which caller submits data.
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from core.models import AuditSubmission, Document

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"
ALIAS_PATTERN = re.compile(r"^[a-z0-9.-]+$")
_CONSECUTIVE_SEPARATORS = re.compile(r"[.-]{2}")
_LINKEDIN_PATTERN = r"^(https?://\S+)?$"


class VisibilityEnum(str, Enum):
    public = "public"
    private = "private"
    unlisted = "unlisted"


# ---------------------------------------------------------------------------
# Users -- requests
# ---------------------------------------------------------------------------


class _EmailBody(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        """Lower-case the whole address so lookups match exactly."""
        return value.lower()


class SignUpRequest(_EmailBody):
    username: str = Field(min_length=1, max_length=39, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=8, max_length=255)


class SignInRequest(_EmailBody):
    password: str = Field(min_length=1, max_length=255)


class ConfirmEmailRequest(_EmailBody):
    code: str = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9]+$")


class EmailOnlyRequest(_EmailBody):
    pass


class DoNotEmailRequest(_EmailBody):
    code: str = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9]+$")


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(min_length=32, max_length=32, pattern=r"^[a-zA-Z0-9]+$")
    new_password: str = Field(min_length=8, max_length=255)


class ProfileUpdate(BaseModel):
    """Request body for PATCH /api/v1/user/me. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    real_name: Optional[str] = Field(default=None, max_length=69)
    linkedin: Optional[str] = Field(default=None, max_length=299, pattern=_LINKEDIN_PATTERN)
    github: Optional[str] = Field(default=None, max_length=39, pattern=r"^[a-zA-Z0-9_-]*$")
    qualifications: Optional[str] = Field(default=None, max_length=4095)


# ---------------------------------------------------------------------------
# Users -- responses
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Plain acknowledgement. code is a stable per-operation success number."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str


class SignInResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int = 0
    message: str = "Signed In"
    username: str


class PublicProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    real_name: str
    linkedin: str
    github: str
    qualifications: str


class PrivateProfile(PublicProfile):
    email: str
    email_confirmed: bool
    created_at: str


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    """Request body for POST /api/v1/docs.

    New documents are private and closed to audit unless the body says
    otherwise; the private + allow_audit combination is rejected by policy.
    """

    title: str = Field(default="", max_length=300)
    content: Any = Field(description="Document body as arbitrary JSON.")
    visibility: VisibilityEnum = VisibilityEnum.private
    allow_audit: bool = False


class DocumentUpdate(BaseModel):
    """Request body for PATCH /api/v1/docs/{doc_id}. All fields are required."""

    title: str = Field(default="", max_length=300)
    content: Any
    visibility: VisibilityEnum
    allow_audit: bool


class AliasUpdate(BaseModel):
    """Request body for PUT /api/v1/docs/{doc_id}/alias."""

    model_config = ConfigDict(str_strip_whitespace=True)

    alias: str = Field(min_length=3, max_length=99)

    @field_validator("alias")
    @classmethod
    def check_alias(cls, value: str) -> str:
        value = value.lower()
        if not ALIAS_PATTERN.match(value):
            raise ValueError("Alias can only have alphanumeric, dash, and dot characters.")
        if _CONSECUTIVE_SEPARATORS.search(value):
            raise ValueError("Alias can't have consecutive dots or dashes.")
        if value[0] in ".-" or value[-1] in ".-":
            raise ValueError("Alias can't start or end with dot or dash.")
        return value


class DocumentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    title: str
    content: Any
    visibility: str
    allow_audit: bool
    alias: Optional[str]
    featured: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentResponse":
        return cls(
            id=doc.id,
            owner_id=doc.owner_id,
            title=doc.title,
            content=doc.content,
            visibility=doc.visibility.value,
            allow_audit=doc.allow_audit,
            alias=doc.alias,
            featured=doc.featured,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


# ---------------------------------------------------------------------------
# Audits
# ---------------------------------------------------------------------------


class AuditUpsert(BaseModel):
    """Request body for PUT /api/v1/docs/{doc_id}/audit.

    data is {item_id: {"description": str, "status": "pass"|"fail"|null,
    "updated": epoch seconds}}. Item-level rules are applied by
    core.validation.parse_audit_payload.
    """

    data: dict[str, Any]


class AuditResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    doc_id: str
    auditor_id: str
    username: str
    data: dict[str, dict]
    updated_at: str

    @classmethod
    def from_submission(cls, submission: AuditSubmission) -> "AuditResponse":
        return cls(
            doc_id=submission.doc_id,
            auditor_id=submission.auditor_id,
            username=submission.auditor_username,
            data={
                item_id: {
                    "description": item.description,
                    "status": item.status.value if item.status is not None else None,
                    "updated": item.updated,
                }
                for item_id, item in submission.data.items()
            },
            updated_at=submission.updated_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    app_code: int
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
