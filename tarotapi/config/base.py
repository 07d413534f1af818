import logging
import os

logger = logging.getLogger(__name__)


def _split_limits(value):
    return [s.strip() for s in value.split(",") if s.strip()]


SETTINGS = {
    "logging": {"level": os.getenv("LOG_LEVEL", "INFO")},
    "service": {"port": int(os.getenv("PORT", "3000"))},
    "environment": {
        "ROLLBAR_SERVER_TOKEN": os.getenv("ROLLBAR_SERVER_TOKEN"),
        "SPARKPOST_API_KEY": os.getenv("SPARKPOST_API_KEY"),
        "CORS_ORIGINS": os.getenv("CORS_ORIGINS"),
    },
    "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URL")
    or (
        "sqlite:///"
        + os.path.join(
            os.getenv("DB_PATH")
            or os.path.join(os.path.dirname(os.path.dirname(__file__)), "data"),
            "tarot.db",
        )
    ),
    "SECRET_KEY": os.getenv("SESSION_SECRET") or os.getenv("SECRET_KEY"),
    # Session cookies live for four weeks
    "SESSION_LIFETIME_DAYS": int(os.getenv("SESSION_LIFETIME_DAYS", "28")),
    "TRUSTED_PROXY_COUNT": int(os.getenv("TRUSTED_PROXY_COUNT", "0")),
    # Links in verification and reset emails point at the web client
    "BASE_URL": os.getenv("BASE_URL", "http://localhost:5173"),
    "EMAIL_FROM": os.getenv("EMAIL_FROM", "noreply@tarot-tracker.app"),
    # Existing user promoted to admin by the startup bootstrap step
    "ADMIN_USERNAME": os.getenv("ADMIN_USERNAME"),
    "AUTH": {
        "MAX_FAILED_ATTEMPTS": int(os.getenv("MAX_FAILED_ATTEMPTS", "5")),
        "LOCKOUT_DURATION_MINUTES": int(os.getenv("LOCKOUT_DURATION_MINUTES", "15")),
        "VERIFICATION_TOKEN_EXPIRY_HOURS": 24,
        "RESET_TOKEN_EXPIRY_HOURS": 1,
        "RESEND_RATE_LIMIT_MINUTES": 5,
        "RESET_RATE_LIMIT_MINUTES": 5,
        "MIN_PASSWORD_LENGTH": 6,
    },
    "RATE_LIMITING": {
        "ENABLED": os.getenv("RATE_LIMITING_ENABLED", "true").lower() == "true",
        "STORAGE_URI": os.getenv("RATE_LIMIT_STORAGE_URI") or "memory://",
        # DEFAULT_LIMITS: applied to every endpoint
        "DEFAULT_LIMITS": _split_limits(
            os.getenv("DEFAULT_LIMITS") or "1000 per hour,100 per minute"
        ),
        # Login and registration
        "AUTH_LIMITS": _split_limits(
            os.getenv("AUTH_LIMITS") or "30 per minute,300 per hour"
        ),
        # Forgot password, reset password and verification resend
        "PASSWORD_RESET_LIMITS": _split_limits(
            os.getenv("PASSWORD_RESET_LIMITS") or "10 per hour,3 per minute"
        ),
    },
}


if not os.getenv("SPARKPOST_API_KEY"):
    logger.warning(
        "SPARKPOST_API_KEY is not set. Verification and password reset emails "
        "will not be delivered."
    )
