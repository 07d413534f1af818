"""USER MODEL"""

import logging

from tarotapi import db
from tarotapi.utils.clock import utcnow

logger = logging.getLogger(__name__)


class User(db.Model):
    """User Model"""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(254), unique=True, nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    display_name = db.Column(db.String(120))
    is_admin = db.Column(db.Boolean(), default=False, nullable=False)
    created_at = db.Column(db.DateTime(), default=utcnow)
    last_login = db.Column(db.DateTime(), nullable=True)

    # Email verification
    email_verified = db.Column(db.Boolean(), default=False, nullable=False)
    verification_token = db.Column(db.String(64), nullable=True, index=True)
    verification_token_expires = db.Column(db.DateTime(), nullable=True)
    verification_sent_at = db.Column(db.DateTime(), nullable=True)

    # Password reset; the send time is derived from the expiry
    reset_token = db.Column(db.String(64), nullable=True, index=True)
    reset_token_expires = db.Column(db.DateTime(), nullable=True)

    # Login attempt tracking
    failed_login_attempts = db.Column(db.Integer(), default=0, nullable=False)
    last_failed_login = db.Column(db.DateTime(), nullable=True)
    account_locked_until = db.Column(db.DateTime(), nullable=True)

    def __init__(self, username, password_hash, email=None, display_name=None, **kw):
        super().__init__(**kw)
        self.username = username
        self.password_hash = password_hash
        self.email = email
        self.display_name = display_name or username
        if self.is_admin is None:
            self.is_admin = False
        if self.email_verified is None:
            self.email_verified = False
        if self.failed_login_attempts is None:
            self.failed_login_attempts = 0

    def __repr__(self):
        return f"<User {self.username!r}>"

    def serialize(self, include=None):
        """Return object data in easily serializeable format

        Args:
            include (list, optional): Additional field groups; "admin" adds
                account timestamps and lockout state for the admin listing.
        """
        include = include if include else []
        user = {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "email_verified": bool(self.email_verified),
            "display_name": self.display_name,
            "is_admin": bool(self.is_admin),
        }

        if "admin" in include:
            user["created_at"] = (
                self.created_at.isoformat() if self.created_at else None
            )
            user["last_login"] = self.last_login.isoformat() if self.last_login else None
            user["failed_login_attempts"] = self.failed_login_attempts or 0
            user["account_locked_until"] = (
                self.account_locked_until.isoformat()
                if self.account_locked_until
                else None
            )

        return user
