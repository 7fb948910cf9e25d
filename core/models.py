from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Audit descriptions must be strictly shorter than this.
MAX_AUDIT_DESCRIPTION = 1000


class Visibility(str, Enum):
    PUBLIC = "public"  # anyone may read, listed on the owner's profile
    UNLISTED = "unlisted"  # readable if the id is known, never listed
    PRIVATE = "private"  # owner only


class AuditStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class Action(str, Enum):
    READ = "read"
    READ_OWNED = "read_owned"
    LIST = "list"  # public listing of a document's audits
    CREATE = "create"
    UPDATE = "update"
    SET_ALIAS = "set_alias"
    DELETE = "delete"
    SUBMIT_AUDIT = "submit_audit"
    READ_OWN_AUDIT = "read_own_audit"
    LIST_AUDITS_AS_OWNER = "list_audits_as_owner"


@dataclass
class Document:
    owner_id: str
    visibility: Visibility = Visibility.PRIVATE
    allow_audit: bool = False
    title: str = ""
    content: object = None  # arbitrary JSON value
    id: Optional[str] = None
    alias: Optional[str] = None
    featured: bool = False
    created_at: str = ""
    updated_at: str = ""


@dataclass
class AuditItem:
    """One auditor's judgment on one item. status None means reviewed, no verdict yet."""

    description: str
    status: Optional[AuditStatus]
    updated: int  # epoch seconds, supplied by the auditor's client


@dataclass
class AuditSubmission:
    doc_id: str
    auditor_id: str
    auditor_username: str
    data: dict[str, AuditItem] = field(default_factory=dict)
    updated_at: str = ""
    id: Optional[int] = None


@dataclass
class AuditEntry:
    username: str
    description: str
    updated: int


@dataclass
class ItemVerdicts:
    passed: list[AuditEntry] = field(default_factory=list)
    failed: list[AuditEntry] = field(default_factory=list)
