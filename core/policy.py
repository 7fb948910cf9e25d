"""
core/policy.py -- Access-control decisions for documents and their audits.

Pure functions only: callers fetch the entities, hand them in, and render the
returned Decision. Nothing here touches a store, a request or a clock.

Each rule is a small guard with the signature (actor_id, document) -> Decision.
decide() runs the guards registered for an action in order and returns the
first denial, so precedence is simply list order in _RULES.

For Action.CREATE and Action.UPDATE the document passed in is the *proposed*
state (owner and new visibility/allow_audit), so the private+auditable
combination is rejected before anything is persisted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from core.errors import ErrorKind, Failure
from core.models import Action, Document, Visibility


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[ErrorKind] = None

    def __bool__(self) -> bool:
        return self.allowed

    def failure(self) -> Failure:
        """Return the Failure for a denied decision. Raises ValueError on an allowed one."""
        if self.reason is None:
            raise ValueError("Decision is not a denial")
        return Failure(self.reason)


ALLOW = Decision(True)


def deny(reason: ErrorKind) -> Decision:
    return Decision(False, reason)


Guard = Callable[[Optional[str], Document], Decision]


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def require_actor(actor_id: Optional[str], document: Document) -> Decision:
    return ALLOW if actor_id is not None else deny(ErrorKind.UNAUTHENTICATED)


def require_owner(actor_id: Optional[str], document: Document) -> Decision:
    return ALLOW if actor_id == document.owner_id else deny(ErrorKind.NOT_OWNER)


def hide_private(actor_id: Optional[str], document: Document) -> Decision:
    # Private documents look missing to non-owners.
    if document.visibility == Visibility.PRIVATE and actor_id != document.owner_id:
        return deny(ErrorKind.DOCUMENT_NOT_FOUND)
    return ALLOW


def forbid_self_audit(actor_id: Optional[str], document: Document) -> Decision:
    return deny(ErrorKind.SELF_AUDIT) if actor_id == document.owner_id else ALLOW


def require_audit_enabled(actor_id: Optional[str], document: Document) -> Decision:
    return ALLOW if document.allow_audit else deny(ErrorKind.AUDITING_DISABLED)


def require_not_private(actor_id: Optional[str], document: Document) -> Decision:
    return deny(ErrorKind.PRIVATE_DOCUMENT) if document.visibility == Visibility.PRIVATE else ALLOW


def check_audit_visibility(visibility: Visibility, allow_audit: bool) -> Decision:
    """Reject the one forbidden write combination: private and open to audit."""
    if visibility == Visibility.PRIVATE and allow_audit:
        return deny(ErrorKind.INVALID_AUDIT_VISIBILITY_COMBINATION)
    return ALLOW


def require_valid_audit_visibility(actor_id: Optional[str], document: Document) -> Decision:
    return check_audit_visibility(document.visibility, document.allow_audit)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

_RULES: dict[Action, tuple[Guard, ...]] = {
    Action.READ: (hide_private,),
    Action.LIST: (require_not_private,),
    Action.READ_OWNED: (require_actor, require_owner),
    Action.UPDATE: (require_actor, require_owner, require_valid_audit_visibility),
    Action.SET_ALIAS: (require_actor, require_owner),
    Action.DELETE: (require_actor, require_owner),
    Action.CREATE: (require_actor, require_owner, require_valid_audit_visibility),
    Action.SUBMIT_AUDIT: (require_actor, forbid_self_audit, require_audit_enabled),
    Action.READ_OWN_AUDIT: (require_actor,),
    Action.LIST_AUDITS_AS_OWNER: (require_actor, require_owner),
}


def decide(actor_id: Optional[str], document: Document, action: Action) -> Decision:
    """Return whether actor_id (None for anonymous) may perform action on document."""
    for guard in _RULES[action]:
        decision = guard(actor_id, document)
        if not decision:
            return decision
    return ALLOW
