"""
tests/test_audit_routes.py -- Integration tests for audit submission and reports.
"""

from __future__ import annotations

import pytest

API = "/api/v1"


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


def _item(status, description="", updated=1700000000):
    return {"description": description, "status": status, "updated": updated}


def _new_doc(client, visibility="public", allow_audit=True) -> str:
    resp = client.post(
        f"{API}/docs",
        json={"title": "T", "content": {}, "visibility": visibility, "allow_audit": allow_audit},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _submit(client, doc_id, data):
    return client.put(f"{API}/docs/{doc_id}/audit", json={"data": data})


def _code(resp) -> int:
    return resp.json()["error"]["app_code"]


@pytest.fixture
def doc_id(client, owner, sign_in):
    sign_in(owner)
    return _new_doc(client)


class TestSubmit:
    def test_submit_and_read_back(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        resp = _submit(client, doc_id, {"item1": _item("pass", "ok")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["username"] == "alice"
        assert body["data"]["item1"]["status"] == "pass"

        own = client.get(f"{API}/docs/{doc_id}/audit").json()
        assert own["data"] == body["data"]

    def test_own_audit_null_before_submitting(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        resp = client.get(f"{API}/docs/{doc_id}/audit")
        assert resp.status_code == 200
        assert resp.json() is None

    def test_resubmit_replaces(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        _submit(client, doc_id, {"item1": _item("pass"), "item2": _item("fail")})
        _submit(client, doc_id, {"item3": _item(None)})
        data = client.get(f"{API}/docs/{doc_id}/audit").json()["data"]
        assert set(data) == {"item3"}

    def test_anonymous(self, client, doc_id):
        client.cookies.clear()
        resp = _submit(client, doc_id, {})
        assert resp.status_code == 401
        assert _code(resp) == 102

    def test_self_audit(self, client, doc_id):
        resp = _submit(client, doc_id, {"item1": _item("pass")})
        assert resp.status_code == 400
        assert _code(resp) == 181

    def test_auditing_disabled(self, client, owner, alice, sign_in):
        sign_in(owner)
        closed = _new_doc(client, allow_audit=False)
        sign_in(alice)
        resp = _submit(client, closed, {"item1": _item("pass")})
        assert resp.status_code == 400
        assert _code(resp) == 182

    def test_private_document_reports_auditing_disabled(self, client, owner, alice, sign_in):
        sign_in(owner)
        private = _new_doc(client, visibility="private", allow_audit=False)
        sign_in(alice)
        resp = _submit(client, private, {"item1": _item("pass")})
        assert resp.status_code == 400
        assert _code(resp) == 182

    def test_malformed_payload(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        resp = _submit(client, doc_id, {"item1": {"description": "x", "status": "maybe", "updated": 1}})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["app_code"] == 1238
        assert error["message"] == "Status must be pass, fail, or null."

    def test_data_must_be_object(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        resp = client.put(f"{API}/docs/{doc_id}/audit", json={"data": ["not", "an", "object"]})
        assert resp.status_code == 422

    def test_missing_document(self, client, alice, sign_in):
        sign_in(alice)
        assert _submit(client, "nope", {}).status_code == 404


class TestReports:
    def test_aggregated_report(self, client, doc_id, alice, bob, sign_in):
        sign_in(alice)
        _submit(client, doc_id, {"item1": _item("pass", "ok", 100), "item2": _item("fail", "bad link", 101)})
        sign_in(bob)
        _submit(client, doc_id, {"item1": _item("fail", "wrong", 200)})

        client.cookies.clear()
        report = client.get(f"{API}/docs/{doc_id}/audits").json()
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

    def test_null_status_creates_empty_bucket(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        _submit(client, doc_id, {"item9": _item(None)})
        assert client.get(f"{API}/docs/{doc_id}/audits").json() == {"item9": {"pass": [], "fail": []}}

    def test_private_document_report_refused(self, client, owner, sign_in):
        sign_in(owner)
        private = _new_doc(client, visibility="private", allow_audit=False)
        resp = client.get(f"{API}/docs/{private}/audits")
        assert resp.status_code == 400
        assert _code(resp) == 184

    def test_owner_report_survives_going_private(self, client, doc_id, owner, alice, sign_in):
        sign_in(alice)
        _submit(client, doc_id, {"item1": _item("pass")})
        sign_in(owner)
        client.patch(
            f"{API}/docs/{doc_id}",
            json={"title": "T", "content": {}, "visibility": "private", "allow_audit": False},
        )
        report = client.get(f"{API}/docs/{doc_id}/audits/private").json()
        assert [e["username"] for e in report["item1"]["pass"]] == ["alice"]

    def test_owner_report_refuses_others(self, client, doc_id, alice, sign_in):
        sign_in(alice)
        resp = client.get(f"{API}/docs/{doc_id}/audits/private")
        assert resp.status_code == 403
        assert _code(resp) == 183

    def test_delete_document_removes_report(self, client, stores, doc_id, alice, owner, sign_in):
        sign_in(alice)
        _submit(client, doc_id, {"item1": _item("pass")})
        sign_in(owner)
        client.delete(f"{API}/docs/{doc_id}")
        assert stores.documents.get_audit_submissions(doc_id) == []


class TestListings:
    def test_auditor_listings_follow_visibility(self, client, owner, alice, sign_in):
        sign_in(owner)
        public = _new_doc(client, visibility="public")
        unlisted = _new_doc(client, visibility="unlisted")

        sign_in(alice)
        _submit(client, public, {"item1": _item("pass")})
        _submit(client, unlisted, {"item1": _item("pass")})

        mine = {a["doc_id"] for a in client.get(f"{API}/audits/mine").json()}
        assert mine == {public, unlisted}

        client.cookies.clear()
        profile = {a["doc_id"] for a in client.get(f"{API}/users/{alice.id}/audits").json()}
        assert profile == {public}
        assert client.get(f"{API}/audits/mine").status_code == 401
