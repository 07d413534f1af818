"""USER SERVICE"""

import logging

from tarotapi.errors import AuthError, NotAllowed, UserDuplicated, UserNotFound
from tarotapi.services.auth_service import deliver
from tarotapi.services.credential_store import VERIFICATION
from tarotapi.services.token_service import TokenIssuer
from tarotapi.utils.clock import utcnow
from tarotapi.utils.security_events import (
    log_admin_action,
    log_password_event,
    log_security_event,
)

logger = logging.getLogger(__name__)


def _same_user(admin, user_id):
    try:
        return int(user_id) == admin.id
    except (TypeError, ValueError):
        return False


class UserService:
    """Self-service account changes and admin user management"""

    def __init__(self, store, hasher, mailer, clock=utcnow, settings=None):
        settings = settings or {}
        self.store = store
        self.hasher = hasher
        self.mailer = mailer
        self.clock = clock
        self.tokens = TokenIssuer(
            clock=clock,
            verification_hours=settings.get("VERIFICATION_TOKEN_EXPIRY_HOURS", 24),
        )

    def get_user(self, user_id):
        user = self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFound("User not found")
        return user

    def update_profile(self, user, display_name=None, username=None):
        logger.info(f"[SERVICE]: Updating profile for {user.username}")
        fields = {"display_name": display_name}
        if username and username != user.username:
            existing = self.store.find_by_username(username)
            if existing is not None and existing.id != user.id:
                raise UserDuplicated("Username already taken")
            fields["username"] = username
        return self.store.persist(user.id, fields)

    def change_password(self, user, current_password, new_password):
        """Change user password"""
        logger.info(f"[SERVICE]: Changing password for user {user.username}")
        if not self.hasher.verify(user.password_hash, current_password):
            raise AuthError("Current password is incorrect")
        user = self.store.persist(
            user.id, {"password_hash": self.hasher.hash(new_password)}
        )
        logger.info(
            f"[SERVICE]: Password for user {user.username} changed successfully"
        )
        log_password_event("PASSWORD_CHANGE", user.id, user.username)
        return user

    def change_email(self, user, email):
        """Replace the user's email and start a fresh verification round"""
        email = email.strip().lower()
        if email == user.email:
            raise NotAllowed("This is already your email address")
        existing = self.store.find_by_email(email)
        if existing is not None and existing.id != user.id:
            raise UserDuplicated("Email is already used by another account")

        fields = {"email": email, "email_verified": False}
        fields.update(self.tokens.issue_verification_token())
        user = self.store.persist(user.id, fields)
        logger.info(f"[SERVICE]: Email changed for {user.username}")
        log_security_event(
            "EMAIL_CHANGE", user_id=user.id, username=user.username, level="info"
        )
        deliver(
            self.mailer.send_verification_email,
            email,
            user.verification_token,
            user.username,
        )
        return user

    def list_users(self):
        return self.store.list_users()

    def count_unverified(self):
        return self.store.count_unverified()

    def admin_reset_password(self, admin, user_id, new_password):
        """Admin change user password (no old password verification required)"""
        if _same_user(admin, user_id):
            raise NotAllowed("Use the profile page to change your own password")
        user = self.get_user(user_id)
        user = self.store.persist(
            user.id, {"password_hash": self.hasher.hash(new_password)}
        )
        logger.info(
            f"[SERVICE]: Password for user {user.username} reset by {admin.username}"
        )
        log_password_event("PASSWORD_CHANGE", user.id, user.username, admin_action=True)
        log_admin_action(admin.id, admin.username, "reset_password", user.id)
        return user

    def admin_verify_user(self, admin, user_id):
        user = self.get_user(user_id)
        fields = {"email_verified": True}
        fields.update(self.tokens.clear_fields(VERIFICATION))
        user = self.store.persist(user.id, fields)
        logger.info(f"[SERVICE]: {user.username} verified by {admin.username}")
        log_admin_action(admin.id, admin.username, "verify_user", user.id)
        if user.email:
            deliver(self.mailer.send_admin_verified_email, user.email, user.username)
        return user

    def admin_change_email(self, admin, user_id, email):
        if _same_user(admin, user_id):
            raise NotAllowed("Use the profile page to change your own email")
        user = self.get_user(user_id)
        email = email.strip().lower()
        existing = self.store.find_by_email(email)
        if existing is not None and existing.id != user.id:
            raise UserDuplicated("Email is already used by another user")

        fields = {"email": email, "email_verified": False}
        fields.update(self.tokens.clear_fields(VERIFICATION))
        user = self.store.persist(user.id, fields)
        log_admin_action(admin.id, admin.username, "change_email", user.id)
        return user

    def delete_user(self, admin, user_id):
        if _same_user(admin, user_id):
            raise NotAllowed("You cannot delete your own account")
        user = self.get_user(user_id)
        username = user.username
        self.store.delete_user(user.id)
        logger.info(f"[SERVICE]: User {username} deleted by {admin.username}")
        log_admin_action(admin.id, admin.username, "delete_user", user_id)
        return True

    def bootstrap_admin(self, username):
        """Promote an existing user to admin.

        Runs once at startup, never while serving requests. Missing users and
        users who already hold the role are left alone.
        """
        if not username:
            logger.info("[SERVICE]: No admin username configured, skipping bootstrap")
            return None
        user = self.store.find_by_username(username)
        if user is None:
            logger.warning(
                f"[SERVICE]: Admin bootstrap skipped, user {username} not found"
            )
            return None
        if user.is_admin:
            logger.info(f"[SERVICE]: {username} is already an admin")
            return user
        user = self.store.persist(user.id, {"is_admin": True})
        logger.warning(f"[SERVICE]: Promoted {username} to admin")
        log_security_event(
            "ADMIN_BOOTSTRAP", user_id=user.id, username=username, level="warning"
        )
        return user
