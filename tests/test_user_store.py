"""
tests/test_user_store.py -- Unit tests for UserStore.
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.tokens import hash_password, verify_password


def test_create_assigns_id_and_timestamp(stores):
    user = stores.users.create_user(User(username="alice", email="alice@example.com"))
    assert user.id
    assert user.created_at
    assert stores.users.get_by_id(user.id).username == "alice"


@pytest.mark.parametrize(
    "duplicate",
    [
        User(username="alice", email="other@example.com"),
        User(username="other", email="alice@example.com"),
    ],
)
def test_duplicate_username_or_email_raises(stores, duplicate):
    stores.users.create_user(User(username="alice", email="alice@example.com"))
    with pytest.raises(IntegrityError):
        stores.users.create_user(duplicate)


def test_lookups_return_none_when_missing(stores):
    assert stores.users.get_by_email("nobody@example.com") is None
    assert stores.users.get_by_username("nobody") is None
    assert stores.users.get_by_id("nope") is None


def test_verify_credentials(stores, make_user):
    user = make_user("alice", password="s3cret-pass")
    assert stores.users.verify_credentials(user, "s3cret-pass")
    assert not stores.users.verify_credentials(user, "wrong-pass")
    assert not stores.users.verify_credentials(None, "s3cret-pass")


class TestConfirmEmail:
    def test_correct_code_confirms_and_clears(self, stores):
        stores.users.create_user(User(username="bob", email="bob@example.com", confirm_code="ABCD1234"))
        assert stores.users.confirm_email("bob@example.com", "ABCD1234")
        user = stores.users.get_by_email("bob@example.com")
        assert user.email_confirmed
        assert user.confirm_code is None

    def test_wrong_code(self, stores):
        stores.users.create_user(User(username="bob", email="bob@example.com", confirm_code="ABCD1234"))
        assert not stores.users.confirm_email("bob@example.com", "abcd1234")
        assert not stores.users.get_by_email("bob@example.com").email_confirmed

    def test_already_confirmed_is_success(self, stores, make_user):
        make_user("carol")
        assert stores.users.confirm_email("carol@example.com", "whatever")

    def test_unknown_email(self, stores):
        assert not stores.users.confirm_email("ghost@example.com", "ABCD1234")

    def test_reissued_code_replaces_old(self, stores):
        user = stores.users.create_user(User(username="bob", email="bob@example.com", confirm_code="OLDCODE1"))
        stores.users.set_confirm_code(user.id, "NEWCODE1")
        assert not stores.users.confirm_email("bob@example.com", "OLDCODE1")
        assert stores.users.confirm_email("bob@example.com", "NEWCODE1")


class TestDoNotEmail:
    def test_matching_code_sets_flag(self, stores):
        stores.users.create_user(User(username="bob", email="bob@example.com", unsubscribe_code="UNSUB123"))
        assert not stores.users.get_by_email("bob@example.com").do_not_email
        assert stores.users.set_do_not_email("bob@example.com", "UNSUB123")
        assert stores.users.get_by_email("bob@example.com").do_not_email

    def test_wrong_code_leaves_flag(self, stores):
        stores.users.create_user(User(username="bob", email="bob@example.com", unsubscribe_code="UNSUB123"))
        assert not stores.users.set_do_not_email("bob@example.com", "WRONG123")
        assert not stores.users.get_by_email("bob@example.com").do_not_email

    def test_no_code_issued(self, stores, make_user):
        make_user("carol")
        assert not stores.users.set_do_not_email("carol@example.com", "anything")

    def test_unknown_email(self, stores):
        assert not stores.users.set_do_not_email("ghost@example.com", "UNSUB123")


class TestPasswordReset:
    CODE = "a" * 32

    def test_reset_replaces_password_once(self, stores, make_user):
        user = make_user("alice", password="old-password")
        stores.users.set_reset_code(user.id, self.CODE, ttl_seconds=3600)
        assert stores.users.reset_password(self.CODE, hash_password("new-password")) == user.id
        stored = stores.users.get_by_id(user.id)
        assert verify_password("new-password", stored.hashed_password)
        assert stored.reset_code is None
        assert stores.users.reset_password(self.CODE, hash_password("third-password")) is None

    def test_expired_code_rejected(self, stores, make_user):
        user = make_user("alice")
        stores.users.set_reset_code(user.id, self.CODE, ttl_seconds=-1)
        assert stores.users.reset_password(self.CODE, hash_password("new-password")) is None


class TestProfile:
    def test_update_known_fields(self, stores, make_user):
        user = make_user("alice")
        assert stores.users.update_profile(user.id, real_name="Alice A", github="alice")
        stored = stores.users.get_by_id(user.id)
        assert stored.real_name == "Alice A"
        assert stored.github == "alice"
        assert stored.linkedin == ""

    def test_unknown_field_rejected(self, stores, make_user):
        user = make_user("alice")
        with pytest.raises(ValueError):
            stores.users.update_profile(user.id, email="evil@example.com")

    def test_empty_update_is_noop(self, stores, make_user):
        assert not stores.users.update_profile(make_user("alice").id)


def test_ping(stores):
    assert stores.users.ping()
