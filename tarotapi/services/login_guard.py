"""LOGIN GUARD

Failed-attempt bookkeeping and temporary lockout for password logins.
"""

import datetime
import enum
import logging
import math
from dataclasses import dataclass, field

from tarotapi.utils.clock import utcnow

logger = logging.getLogger(__name__)


class LoginOutcome(enum.Enum):
    SUCCESS = "success"
    INCORRECT_CREDENTIALS = "incorrect_credentials"
    LOCKED_OUT = "locked_out"
    LOCK_EXPIRED = "lock_expired"
    ACCOUNT_JUST_LOCKED = "account_just_locked"


@dataclass
class LoginAttempt:
    """Result of a guard decision plus the user fields it changed."""

    outcome: LoginOutcome
    updates: dict = field(default_factory=dict)
    remaining_attempts: int | None = None
    minutes_remaining: int | None = None


def _plural(count, word):
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def unknown_user_message():
    return "Incorrect username or password."


def incorrect_credentials_message(remaining_attempts):
    return (
        "Incorrect username or password. "
        f"{_plural(remaining_attempts, 'attempt')} remaining."
    )


def just_locked_message(lockout_minutes):
    return (
        "Too many failed attempts. "
        f"Account locked for {_plural(lockout_minutes, 'minute')}."
    )


def locked_message(minutes_remaining):
    return (
        "Account temporarily locked. "
        f"Try again in {_plural(minutes_remaining, 'minute')}."
    )


class LoginGuard:
    """Decide whether a login may proceed and track consecutive failures"""

    def __init__(self, max_failed_attempts=5, lockout_minutes=15, clock=utcnow):
        self.max_failed_attempts = max_failed_attempts
        self.lockout_minutes = lockout_minutes
        self.clock = clock

    def is_locked(self, user):
        locked_until = user.account_locked_until
        return locked_until is not None and locked_until > self.clock()

    def check(self, user):
        """Inspect the lock state before the password is looked at.

        Returns a LOCKED_OUT attempt while the lock is active. When a lock has
        elapsed, returns a LOCK_EXPIRED attempt whose ``updates`` reset the
        counter; the caller must persist them before checking the password.
        Returns None when nothing applies.
        """
        locked_until = user.account_locked_until
        if locked_until is None:
            return None

        now = self.clock()
        if locked_until > now:
            remaining = (locked_until - now).total_seconds() / 60
            minutes = max(1, math.ceil(remaining))
            logger.info(
                f"[AUTH]: Login refused for locked account {user.username}, "
                f"{minutes} min left"
            )
            return LoginAttempt(LoginOutcome.LOCKED_OUT, minutes_remaining=minutes)

        logger.info(f"[AUTH]: Lockout elapsed for {user.username}, counter reset")
        return LoginAttempt(
            LoginOutcome.LOCK_EXPIRED,
            updates={"failed_login_attempts": 0, "account_locked_until": None},
        )

    def record_failure(self, user):
        attempts = (user.failed_login_attempts or 0) + 1
        now = self.clock()
        updates = {"failed_login_attempts": attempts, "last_failed_login": now}

        if attempts >= self.max_failed_attempts:
            updates["account_locked_until"] = now + datetime.timedelta(
                minutes=self.lockout_minutes
            )
            logger.warning(
                f"[AUTH]: Account {user.username} locked after {attempts} "
                "failed attempts"
            )
            return LoginAttempt(
                LoginOutcome.ACCOUNT_JUST_LOCKED,
                updates=updates,
                remaining_attempts=0,
                minutes_remaining=self.lockout_minutes,
            )

        return LoginAttempt(
            LoginOutcome.INCORRECT_CREDENTIALS,
            updates=updates,
            remaining_attempts=self.max_failed_attempts - attempts,
        )

    def record_success(self, user):
        return LoginAttempt(
            LoginOutcome.SUCCESS,
            updates={
                "failed_login_attempts": 0,
                "last_failed_login": None,
                "account_locked_until": None,
            },
        )
