"""
tests/test_validation.py -- Unit tests for audit payload parsing.
"""

from __future__ import annotations

import pytest

from core.errors import ErrorKind, Failure
from core.models import AuditStatus
from core.validation import dump_items, load_stored_items, parse_audit_payload


def _item(**overrides):
    item = {"description": "fine", "status": "pass", "updated": 1700000000}
    item.update(overrides)
    return item


def test_valid_payload_parses_in_order():
    items = parse_audit_payload({"b": _item(), "a": _item(status="fail"), "c": _item(status=None)})
    assert not isinstance(items, Failure)
    assert list(items) == ["b", "a", "c"]
    assert items["a"].status == AuditStatus.FAIL
    assert items["c"].status is None


def test_empty_object_is_valid():
    assert parse_audit_payload({}) == {}


@pytest.mark.parametrize("data", [[], "x", None, 3])
def test_non_object_rejected(data):
    result = parse_audit_payload(data)
    assert isinstance(result, Failure)
    assert result.kind == ErrorKind.MALFORMED_AUDIT_PAYLOAD
    assert result.message == "Data should be a JSON object."


@pytest.mark.parametrize("field", ["description", "status", "updated"])
def test_missing_field(field):
    item = _item()
    del item[field]
    result = parse_audit_payload({"x": item})
    assert isinstance(result, Failure)
    assert result.message == f"Missing {field}."


def test_description_length_limit_is_exclusive():
    assert not isinstance(parse_audit_payload({"x": _item(description="d" * 999)}), Failure)
    result = parse_audit_payload({"x": _item(description="d" * 1000)})
    assert isinstance(result, Failure)
    assert result.message == "Description must be shorter than 1000 characters."


@pytest.mark.parametrize("status", ["PASS", "ok", 1, ""])
def test_bad_status(status):
    result = parse_audit_payload({"x": _item(status=status)})
    assert isinstance(result, Failure)
    assert result.message == "Status must be pass, fail, or null."


@pytest.mark.parametrize("updated", ["1700000000", 1.5, True, None])
def test_bad_updated(updated):
    result = parse_audit_payload({"x": _item(updated=updated)})
    assert isinstance(result, Failure)
    assert result.message == "Updated must be valid epoch."


def test_integral_float_updated_is_accepted_as_int():
    items = parse_audit_payload({"x": _item(updated=100.0)})
    assert not isinstance(items, Failure)
    assert items["x"].updated == 100
    assert type(items["x"].updated) is int


def test_description_length_counts_utf16_units():
    # Each emoji is two UTF-16 code units.
    assert not isinstance(parse_audit_payload({"x": _item(description="\U0001F600" * 499)}), Failure)
    result = parse_audit_payload({"x": _item(description="\U0001F600" * 500)})
    assert isinstance(result, Failure)
    assert result.message == "Description must be shorter than 1000 characters."


def test_one_bad_item_rejects_whole_payload():
    result = parse_audit_payload({"good": _item(), "bad": _item(status="maybe")})
    assert isinstance(result, Failure)


def test_stored_unknown_status_reads_as_none():
    items = load_stored_items({"x": {"description": "old", "status": "unknown", "updated": 3}})
    assert items["x"].status is None
    assert items["x"].description == "old"


def test_dump_matches_wire_shape():
    items = parse_audit_payload({"x": _item(status=None)})
    assert dump_items(items) == {"x": {"description": "fine", "status": None, "updated": 1700000000}}
