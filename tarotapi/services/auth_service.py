"""AUTH SERVICE"""

import logging

import rollbar

from tarotapi.errors import (
    AccountLocked,
    EmailDeliveryError,
    InvalidCredentials,
    InvalidToken,
    NotAllowed,
    TokenExpired,
    UserDuplicated,
)
from tarotapi.services.credential_store import RESET, VERIFICATION
from tarotapi.services.login_guard import (
    LoginGuard,
    LoginOutcome,
    incorrect_credentials_message,
    just_locked_message,
    locked_message,
    unknown_user_message,
)
from tarotapi.services.token_service import TokenIssuer
from tarotapi.utils.clock import utcnow
from tarotapi.utils.security_events import (
    log_account_locked,
    log_authentication_event,
    log_password_event,
    log_security_event,
)

logger = logging.getLogger(__name__)


def deliver(send, *args):
    """Send a notification without letting delivery failures escape.

    The state change the email announces has already been persisted, so a
    failed send is logged and reported but never undone.
    """
    try:
        send(*args)
        return True
    except EmailDeliveryError as error:
        logger.error(f"[SERVICE]: Email delivery failed: {error}")
        rollbar.report_exc_info()
        return False


class AuthService:
    """Login, registration, email verification and password reset"""

    def __init__(self, store, hasher, mailer, clock=utcnow, settings=None):
        settings = settings or {}
        self.store = store
        self.hasher = hasher
        self.mailer = mailer
        self.clock = clock
        self.guard = LoginGuard(
            max_failed_attempts=settings.get("MAX_FAILED_ATTEMPTS", 5),
            lockout_minutes=settings.get("LOCKOUT_DURATION_MINUTES", 15),
            clock=clock,
        )
        self.tokens = TokenIssuer(
            clock=clock,
            verification_hours=settings.get("VERIFICATION_TOKEN_EXPIRY_HOURS", 24),
            reset_hours=settings.get("RESET_TOKEN_EXPIRY_HOURS", 1),
            resend_cooldown_minutes=settings.get("RESEND_RATE_LIMIT_MINUTES", 5),
            reset_cooldown_minutes=settings.get("RESET_RATE_LIMIT_MINUTES", 5),
        )

    def login(self, username, password):
        logger.info(f"[AUTH]: Authentication attempt for {username}")
        user = self.store.find_by_username(username)
        if user is None:
            logger.warning(f"[AUTH]: Failed login - user not found: {username}")
            log_authentication_event(False, username, "user_not_found")
            raise InvalidCredentials(unknown_user_message())

        attempt = self.guard.check(user)
        if attempt is not None:
            if attempt.outcome == LoginOutcome.LOCKED_OUT:
                log_authentication_event(False, username, "account_locked")
                raise AccountLocked(
                    locked_message(attempt.minutes_remaining),
                    minutes_remaining=attempt.minutes_remaining,
                )
            user = self.store.persist(user.id, attempt.updates)

        if not self.hasher.verify(user.password_hash, password):
            attempt = self.guard.record_failure(user)
            self.store.persist(user.id, attempt.updates)
            if attempt.outcome == LoginOutcome.ACCOUNT_JUST_LOCKED:
                log_account_locked(user.id, username, self.guard.lockout_minutes)
                raise AccountLocked(
                    just_locked_message(self.guard.lockout_minutes),
                    minutes_remaining=self.guard.lockout_minutes,
                    just_locked=True,
                )
            logger.warning(f"[AUTH]: Failed login - invalid password: {username}")
            log_authentication_event(False, username, "invalid_password")
            raise InvalidCredentials(
                incorrect_credentials_message(attempt.remaining_attempts),
                remaining_attempts=attempt.remaining_attempts,
            )

        updates = self.guard.record_success(user).updates
        updates["last_login"] = self.clock()
        user = self.store.persist(user.id, updates)
        logger.info(f"[AUTH]: Successful login for user {username}")
        log_authentication_event(True, username)
        return user

    def register(self, username, password, email):
        logger.info("[SERVICE]: Registering user")
        email = email.strip().lower()
        if self.store.find_by_email(email) is not None:
            raise UserDuplicated("Email already registered")
        if self.store.find_by_username(username) is not None:
            raise UserDuplicated("Username already exists")

        fields = {
            "username": username,
            "password_hash": self.hasher.hash(password),
            "email": email,
            "display_name": username,
            "email_verified": False,
            "is_admin": False,
        }
        fields.update(self.tokens.issue_verification_token())
        user = self.store.create_user(fields)
        logger.info(f"[SERVICE]: User {username} created, awaiting verification")

        deliver(
            self.mailer.send_verification_email,
            email,
            user.verification_token,
            username,
        )
        return user

    def verify_email(self, token):
        user = self.store.find_by_token(token, VERIFICATION)
        self.tokens.check_token(user, VERIFICATION)
        fields = {"email_verified": True}
        fields.update(self.tokens.clear_fields(VERIFICATION))
        user = self.store.persist(user.id, fields)
        logger.info(f"[SERVICE]: Email verified for {user.username}")
        log_security_event(
            "EMAIL_VERIFIED", user_id=user.id, username=user.username, level="info"
        )
        return user

    def resend_verification(self, email):
        """Issue a fresh verification token.

        Returns False when no account uses the address so callers can answer
        without revealing whether it is registered.
        """
        user = self.store.find_by_email(email.strip().lower())
        if user is None:
            logger.info("[SERVICE]: Verification resend for unknown email")
            return False
        if user.email_verified:
            raise NotAllowed("Email is already verified")
        self.tokens.check_verification_resend(user)

        user = self.store.persist(user.id, self.tokens.issue_verification_token())
        deliver(
            self.mailer.send_verification_email,
            user.email,
            user.verification_token,
            user.username,
        )
        return True

    def request_password_reset(self, email):
        """Issue a reset token for a verified account.

        Returns True only when a token was issued. Unknown and unverified
        addresses are ignored silently.
        """
        user = self.store.find_by_email(email.strip().lower())
        if user is None:
            logger.info("[SERVICE]: Password reset requested for unknown email")
            return False
        if not user.email_verified:
            logger.info(
                f"[SERVICE]: Password reset ignored for unverified {user.username}"
            )
            return False
        self.tokens.check_reset_resend(user)

        user = self.store.persist(user.id, self.tokens.issue_reset_token())
        log_password_event("PASSWORD_RESET_REQUESTED", user.id, user.username)
        deliver(
            self.mailer.send_password_reset_email,
            user.email,
            user.reset_token,
            user.username,
        )
        return True

    def reset_password(self, token, new_password):
        user = self.store.find_by_token(token, RESET)
        self.tokens.check_token(user, RESET)
        fields = {"password_hash": self.hasher.hash(new_password)}
        fields.update(self.tokens.clear_fields(RESET))
        user = self.store.persist(user.id, fields)
        logger.info(f"[SERVICE]: Password reset for {user.username}")
        log_password_event("PASSWORD_RESET", user.id, user.username)
        return user

    def validate_reset_token(self, token):
        user = self.store.find_by_token(token, RESET)
        if user is None:
            raise InvalidToken("Invalid reset link")
        if self.tokens.is_expired(user.reset_token_expires):
            raise TokenExpired("Reset link has expired")
        return True
