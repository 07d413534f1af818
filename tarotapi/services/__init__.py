"""TAROT API SERVICES MODULE"""

import logging
import sys

logger = logging.getLogger()


def handle_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


sys.excepthook = handle_exception

from tarotapi.services.credential_store import (  # noqa: E402
    CredentialStore,
    SQLAlchemyCredentialStore,
)
from tarotapi.services.email_service import EmailService  # noqa: E402
from tarotapi.services.login_guard import (  # noqa: E402
    LoginAttempt,
    LoginGuard,
    LoginOutcome,
)
from tarotapi.services.token_service import TokenIssuer  # noqa: E402
from tarotapi.services.auth_service import AuthService  # noqa: E402, isort:skip
from tarotapi.services.user_service import UserService  # noqa: E402, isort:skip

__all__ = [
    "AuthService",
    "CredentialStore",
    "EmailService",
    "LoginAttempt",
    "LoginGuard",
    "LoginOutcome",
    "SQLAlchemyCredentialStore",
    "TokenIssuer",
    "UserService",
]
