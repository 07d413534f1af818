"""Password hashing backed by werkzeug.security"""

import logging

from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


class PasswordHasher:
    """One-way salted password hashing."""

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password is required")
        return generate_password_hash(password)

    def verify(self, password_hash: str | None, password: str | None) -> bool:
        if not password_hash:
            logger.warning("[AUTH]: No password hash stored for user")
            return False

        if not password:
            logger.debug("Empty password provided for authentication")
            return False

        try:
            return check_password_hash(password_hash, password)
        except ValueError as e:
            logger.error(f"[AUTH]: Invalid password hash format: {e}")
            return False
