"""
tests/test_aggregator.py -- Unit tests for core.aggregator.
"""

from __future__ import annotations

from core.aggregator import aggregate, report_to_dict
from core.models import AuditItem, AuditStatus, AuditSubmission


def _submission(username: str, **items: AuditItem) -> AuditSubmission:
    return AuditSubmission(doc_id="d1", auditor_id=f"id-{username}", auditor_username=username, data=dict(items))


def test_two_auditors_split_on_one_item():
    alice = _submission(
        "alice",
        item1=AuditItem("ok", AuditStatus.PASS, 100),
        item2=AuditItem("bad link", AuditStatus.FAIL, 101),
    )
    bob = _submission("bob", item1=AuditItem("wrong", AuditStatus.FAIL, 200))

    report = report_to_dict(aggregate([alice, bob]))

    assert report == {
        "item1": {
            "pass": [{"username": "alice", "description": "ok", "updated": 100}],
            "fail": [{"username": "bob", "description": "wrong", "updated": 200}],
        },
        "item2": {
            "pass": [],
            "fail": [{"username": "alice", "description": "bad link", "updated": 101}],
        },
    }


def test_null_status_creates_empty_bucket():
    report = aggregate([_submission("carol", item9=AuditItem("looked", None, 5))])
    assert set(report) == {"item9"}
    assert report["item9"].passed == []
    assert report["item9"].failed == []


def test_no_submissions_gives_empty_report():
    assert aggregate([]) == {}


def test_entries_follow_submission_order():
    subs = [_submission(name, x=AuditItem(name, AuditStatus.PASS, i)) for i, name in enumerate(["z", "a", "m"])]
    report = aggregate(subs)
    assert [e.username for e in report["x"].passed] == ["z", "a", "m"]


def test_aggregate_is_idempotent():
    subs = [
        _submission("alice", a=AuditItem("ok", AuditStatus.PASS, 1)),
        _submission("bob", a=AuditItem("no", AuditStatus.FAIL, 2), b=AuditItem("", None, 3)),
    ]
    assert report_to_dict(aggregate(subs)) == report_to_dict(aggregate(subs))


def test_every_verdict_lands_in_exactly_one_list():
    subs = [
        _submission("alice", a=AuditItem("", AuditStatus.PASS, 1), b=AuditItem("", AuditStatus.FAIL, 1)),
        _submission("bob", a=AuditItem("", AuditStatus.FAIL, 1), b=AuditItem("", None, 1)),
    ]
    report = aggregate(subs)
    total = sum(len(v.passed) + len(v.failed) for v in report.values())
    assert total == 3
