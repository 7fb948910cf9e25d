"""
core/validation.py -- Audit payload parsing.

parse_audit_payload() is the strict, submission-time check: any malformed item
rejects the whole payload with MALFORMED_AUDIT_PAYLOAD and a message naming the
problem. load_stored_items() is the lenient read-time counterpart used by the
document store: rows written before a rule existed are passed through rather
than rejected.
"""

from __future__ import annotations

from typing import Any

from core.errors import ErrorKind, Failure
from core.models import MAX_AUDIT_DESCRIPTION, AuditItem, AuditStatus

_REQUIRED_FIELDS = ("description", "status", "updated")


def _malformed(message: str) -> Failure:
    return Failure(ErrorKind.MALFORMED_AUDIT_PAYLOAD, message)


def _utf16_length(text: str) -> int:
    """Length in UTF-16 code units, the unit browsers count in."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def parse_audit_payload(data: Any) -> dict[str, AuditItem] | Failure:
    """Validate a raw {item_id: {description, status, updated}} mapping.

    Returns the parsed items in input order, or a Failure for the first problem
    found.
    """
    if not isinstance(data, dict):
        return _malformed("Data should be a JSON object.")

    items: dict[str, AuditItem] = {}
    for item_id, item in data.items():
        if not isinstance(item_id, str) or not item_id:
            return _malformed("Item ids must be non-empty strings.")
        if not isinstance(item, dict):
            return _malformed(f"Item {item_id!r} must be an object.")
        for name in _REQUIRED_FIELDS:
            if name not in item:
                return _malformed(f"Missing {name}.")

        description = item["description"]
        if not isinstance(description, str):
            return _malformed("Description must be a string.")
        if _utf16_length(description) >= MAX_AUDIT_DESCRIPTION:
            return _malformed(f"Description must be shorter than {MAX_AUDIT_DESCRIPTION} characters.")

        raw_status = item["status"]
        if raw_status is None:
            status = None
        elif raw_status in ("pass", "fail"):
            status = AuditStatus(raw_status)
        else:
            return _malformed("Status must be pass, fail, or null.")

        updated = item["updated"]
        if isinstance(updated, float) and updated.is_integer():
            updated = int(updated)
        # bool is an int subclass; true/false is not an epoch.
        if isinstance(updated, bool) or not isinstance(updated, int):
            return _malformed("Updated must be valid epoch.")

        items[item_id] = AuditItem(description=description, status=status, updated=updated)
    return items


def load_stored_items(data: dict) -> dict[str, AuditItem]:
    """Rebuild AuditItems from a persisted payload without rejecting anything.

    Unknown status values are read as None so they count as neither pass nor
    fail.
    """
    items: dict[str, AuditItem] = {}
    for item_id, item in data.items():
        if not isinstance(item, dict):
            continue
        raw_status = item.get("status")
        status = AuditStatus(raw_status) if raw_status in ("pass", "fail") else None
        items[item_id] = AuditItem(
            description=str(item.get("description", "")),
            status=status,
            updated=item.get("updated", 0),
        )
    return items


def dump_items(items: dict[str, AuditItem]) -> dict[str, dict]:
    """Inverse of load_stored_items -- the JSON shape written to the store."""
    return {
        item_id: {
            "description": item.description,
            "status": item.status.value if item.status is not None else None,
            "updated": item.updated,
        }
        for item_id, item in items.items()
    }
