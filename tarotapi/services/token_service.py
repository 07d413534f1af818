"""TOKEN SERVICE

Single-use email verification and password reset tokens.
"""

import datetime
import logging
import math
import secrets

from tarotapi.errors import InvalidToken, RateLimited, TokenExpired
from tarotapi.services.credential_store import RESET, VERIFICATION
from tarotapi.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32

_MESSAGES = {
    VERIFICATION: {
        "invalid": "Invalid verification link",
        "expired": "Verification link has expired. Please request a new one.",
    },
    RESET: {
        "invalid": "Invalid or expired reset link",
        "expired": "Reset link has expired. Please request a new one.",
    },
}


class TokenIssuer:
    """Issue, check and consume emailed tokens"""

    def __init__(
        self,
        clock=utcnow,
        verification_hours=24,
        reset_hours=1,
        resend_cooldown_minutes=5,
        reset_cooldown_minutes=5,
    ):
        self.clock = clock
        self.verification_lifetime = datetime.timedelta(hours=verification_hours)
        self.reset_lifetime = datetime.timedelta(hours=reset_hours)
        self.resend_cooldown_minutes = resend_cooldown_minutes
        self.reset_cooldown_minutes = reset_cooldown_minutes

    @staticmethod
    def generate_token():
        return secrets.token_hex(TOKEN_BYTES)

    def issue_verification_token(self):
        now = self.clock()
        return {
            "verification_token": self.generate_token(),
            "verification_token_expires": now + self.verification_lifetime,
            "verification_sent_at": now,
        }

    def issue_reset_token(self):
        return {
            "reset_token": self.generate_token(),
            "reset_token_expires": self.clock() + self.reset_lifetime,
        }

    def _elapsed_minutes(self, sent_at):
        return (self.clock() - sent_at).total_seconds() / 60

    def can_resend(self, sent_at, cooldown_minutes):
        if sent_at is None:
            return True
        return self._elapsed_minutes(sent_at) >= cooldown_minutes

    def wait_minutes(self, sent_at, cooldown_minutes):
        if sent_at is None:
            return 0
        return max(0, math.ceil(cooldown_minutes - self._elapsed_minutes(sent_at)))

    def reset_sent_at(self, expires):
        """Reset tokens only store their expiry; the send time is derived."""
        if expires is None:
            return None
        return expires - self.reset_lifetime

    def check_verification_resend(self, user):
        sent_at = user.verification_sent_at
        if self.can_resend(sent_at, self.resend_cooldown_minutes):
            return
        wait = self.wait_minutes(sent_at, self.resend_cooldown_minutes)
        raise RateLimited(
            f"Please wait {wait} minutes before requesting another "
            "verification email",
            wait_minutes=wait,
        )

    def check_reset_resend(self, user):
        sent_at = self.reset_sent_at(user.reset_token_expires)
        if self.can_resend(sent_at, self.reset_cooldown_minutes):
            return
        wait = self.wait_minutes(sent_at, self.reset_cooldown_minutes)
        unit = "minute" if wait == 1 else "minutes"
        raise RateLimited(
            f"Please wait {wait} {unit} before requesting another reset email.",
            wait_minutes=wait,
        )

    def is_expired(self, expires):
        return expires is None or self.clock() > expires

    def check_token(self, user, kind):
        """Raise unless ``user`` holds an unexpired token of ``kind``."""
        messages = _MESSAGES[kind]
        if user is None:
            raise InvalidToken(messages["invalid"])
        expires = (
            user.verification_token_expires
            if kind == VERIFICATION
            else user.reset_token_expires
        )
        if self.is_expired(expires):
            logger.info(f"[AUTH]: Expired {kind} token presented by {user.username}")
            raise TokenExpired(messages["expired"])

    @staticmethod
    def clear_fields(kind):
        if kind == VERIFICATION:
            return {
                "verification_token": None,
                "verification_token_expires": None,
            }
        return {"reset_token": None, "reset_token_expires": None}
