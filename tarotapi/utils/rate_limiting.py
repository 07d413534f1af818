"""Rate limiting utilities for the Tarot API"""

import hashlib
import logging

from flask import jsonify, request
from flask_limiter.util import get_remote_address

from tarotapi.config import SETTINGS
from tarotapi.utils.security_events import log_rate_limit_exceeded

logger = logging.getLogger(__name__)


class RateLimitConfig:
    """Read rate limiting settings"""

    @staticmethod
    def _settings():
        return SETTINGS.get("RATE_LIMITING", {})

    @staticmethod
    def is_enabled():
        return RateLimitConfig._settings().get("ENABLED", True)

    @staticmethod
    def get_storage_uri():
        return RateLimitConfig._settings().get("STORAGE_URI") or "memory://"

    @staticmethod
    def get_default_limits():
        return RateLimitConfig._settings().get("DEFAULT_LIMITS", [])

    @staticmethod
    def get_auth_limits():
        return RateLimitConfig._settings().get("AUTH_LIMITS", [])

    @staticmethod
    def get_password_reset_limits():
        return RateLimitConfig._settings().get("PASSWORD_RESET_LIMITS", [])


def is_rate_limiting_disabled():
    """Helper function for exempt_when parameter to check if rate limiting is
    disabled"""
    enabled = RateLimitConfig.is_enabled()
    from tarotapi import limiter

    if hasattr(limiter, "enabled"):
        enabled = enabled and limiter.enabled
    return not enabled


def get_user_id_or_ip():
    """
    Get user ID for authenticated requests, IP address for anonymous requests.
    Returns None if the user is an admin and exempt from rate limiting.
    """
    from tarotapi.utils.session import current_user

    try:
        user = current_user()
        if user is not None:
            if user.is_admin:
                return None
            return f"user:{user.id}"
    except Exception as e:
        logger.debug(f"Failed to get current user for rate limiting: {e}")
    return f"ip:{get_remote_address()}"


def get_rate_limit_key_for_auth():
    """
    Key function for authentication endpoints.
    Uses username or email + IP so one account cannot use up another's limit.
    """
    body = request.get_json(silent=True) or {}
    identifier = body.get("username") or body.get("email") or ""
    ip = get_remote_address()
    if identifier:
        # Hash the identifier to prevent log leakage
        digest = hashlib.sha256(str(identifier).lower().encode()).hexdigest()[:16]
        return f"auth:{digest}:{ip}"
    return f"auth:anon:{ip}"


def rate_limit_error_handler(request_limit):
    """Called by Flask-Limiter when a limit is breached"""
    endpoint = request.path or request.endpoint
    log_rate_limit_exceeded(limit_type=endpoint or "unknown_endpoint")
    logger.warning(
        f"[RATE LIMIT]: {get_remote_address()} exceeded {request_limit.limit} "
        f"on {endpoint}"
    )
    response = jsonify({"error": "Too many requests. Please try again later."})
    response.status_code = 429
    return response
