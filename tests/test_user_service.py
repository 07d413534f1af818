"""Tests for self-service and admin account management"""

import pytest

from conftest import NEW_PASSWORD, USER_TEST_PASSWORD, hasher
from tarotapi.errors import AuthError, NotAllowed, UserDuplicated, UserNotFound


@pytest.fixture
def admin(make_user):
    return make_user("admin", is_admin=True)


class TestSelfService:
    def test_update_profile(self, accounts, make_user):
        user = make_user("alice")
        updated = accounts.update_profile(user, display_name="Alice A.", username="ali")
        assert updated.display_name == "Alice A."
        assert updated.username == "ali"

    def test_update_profile_keeps_username_when_absent(self, accounts, make_user):
        user = make_user("alice")
        accounts.update_profile(user, display_name="Alice", username=None)
        assert user.username == "alice"

    def test_update_profile_username_taken(self, accounts, make_user):
        make_user("bob")
        user = make_user("alice")
        with pytest.raises(UserDuplicated) as exc:
            accounts.update_profile(user, display_name="Alice", username="bob")
        assert exc.value.message == "Username already taken"

    def test_change_password(self, accounts, make_user):
        user = make_user("alice")
        accounts.change_password(user, USER_TEST_PASSWORD, NEW_PASSWORD)
        assert hasher.verify(user.password_hash, NEW_PASSWORD)

    def test_change_password_wrong_current(self, accounts, make_user):
        user = make_user("alice")
        with pytest.raises(AuthError) as exc:
            accounts.change_password(user, "not-it", NEW_PASSWORD)
        assert exc.value.message == "Current password is incorrect"

    def test_change_email_requires_new_verification(self, accounts, make_user, mailer):
        user = make_user("alice", email_verified=True)
        accounts.change_email(user, "New@Example.com")

        assert user.email == "new@example.com"
        assert not user.email_verified
        assert user.verification_token is not None
        assert mailer.sent == [
            ("verification", "new@example.com", user.verification_token, "alice")
        ]

    def test_change_email_same_address(self, accounts, make_user):
        user = make_user("alice")
        with pytest.raises(NotAllowed) as exc:
            accounts.change_email(user, "alice@example.com")
        assert exc.value.message == "This is already your email address"

    def test_change_email_taken(self, accounts, make_user):
        make_user("bob")
        user = make_user("alice")
        with pytest.raises(UserDuplicated) as exc:
            accounts.change_email(user, "bob@example.com")
        assert exc.value.message == "Email is already used by another account"


class TestAdminActions:
    def test_list_and_count(self, accounts, make_user, admin):
        make_user("zed", email_verified=False)
        make_user("bob")
        assert [u.username for u in accounts.list_users()] == ["admin", "bob", "zed"]
        assert accounts.count_unverified() == 1

    def test_admin_reset_password(self, accounts, make_user, admin):
        user = make_user("alice")
        accounts.admin_reset_password(admin, user.id, NEW_PASSWORD)
        assert hasher.verify(user.password_hash, NEW_PASSWORD)

    def test_admin_cannot_reset_own_password(self, accounts, admin):
        with pytest.raises(NotAllowed) as exc:
            accounts.admin_reset_password(admin, admin.id, NEW_PASSWORD)
        assert exc.value.message == "Use the profile page to change your own password"

    def test_admin_reset_missing_user(self, accounts, admin):
        with pytest.raises(UserNotFound) as exc:
            accounts.admin_reset_password(admin, 999, NEW_PASSWORD)
        assert exc.value.message == "User not found"

    def test_admin_verify_notifies_user(self, accounts, make_user, admin, mailer):
        user = make_user("alice", email_verified=False, verification_token="t" * 64)
        accounts.admin_verify_user(admin, user.id)

        assert user.email_verified
        assert user.verification_token is None
        assert mailer.sent == [("admin_verified", "alice@example.com", "alice")]

    def test_admin_verify_without_email_sends_nothing(
        self, accounts, make_user, admin, mailer
    ):
        user = make_user("alice", email=None, email_verified=False)
        accounts.admin_verify_user(admin, user.id)
        assert user.email_verified
        assert mailer.sent == []

    def test_admin_verify_survives_email_failure(
        self, accounts, make_user, admin, mailer
    ):
        user = make_user("alice", email_verified=False)
        mailer.fail = True
        accounts.admin_verify_user(admin, user.id)
        assert user.email_verified

    def test_admin_change_email(self, accounts, make_user, admin, mailer):
        user = make_user("alice", email_verified=True, verification_token="t" * 64)
        accounts.admin_change_email(admin, user.id, "Fresh@Example.com")

        assert user.email == "fresh@example.com"
        assert not user.email_verified
        assert user.verification_token is None
        assert mailer.sent == []

    def test_admin_change_email_conflicts(self, accounts, make_user, admin):
        make_user("bob")
        user = make_user("alice")
        with pytest.raises(UserDuplicated) as exc:
            accounts.admin_change_email(admin, user.id, "bob@example.com")
        assert exc.value.message == "Email is already used by another user"

        with pytest.raises(NotAllowed):
            accounts.admin_change_email(admin, admin.id, "x@example.com")

    def test_delete_user(self, accounts, make_user, admin, store):
        user = make_user("alice")
        assert accounts.delete_user(admin, user.id) is True
        assert store.find_by_id(user.id) is None

        with pytest.raises(UserNotFound):
            accounts.delete_user(admin, user.id)

    def test_admin_cannot_delete_self(self, accounts, admin):
        with pytest.raises(NotAllowed) as exc:
            accounts.delete_user(admin, str(admin.id))
        assert exc.value.message == "You cannot delete your own account"


class TestBootstrapAdmin:
    def test_promotes_existing_user(self, accounts, make_user):
        user = make_user("alice")
        assert accounts.bootstrap_admin("alice") is user
        assert user.is_admin

    def test_missing_user_is_noop(self, accounts):
        assert accounts.bootstrap_admin("ghost") is None

    def test_already_admin_is_left_alone(self, accounts, admin, store):
        assert accounts.bootstrap_admin("admin") is admin
        assert admin.is_admin

    def test_no_username_configured(self, accounts):
        assert accounts.bootstrap_admin(None) is None
