"""Security event logging utilities for the Tarot API"""

import logging
from typing import Any, Optional

from flask import has_request_context, request
from flask_limiter.util import get_remote_address
import rollbar

from tarotapi.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Security event types for consistent logging
SECURITY_EVENTS = {
    "LOGIN_SUCCESS": "User login successful",
    "LOGIN_FAILURE": "User login failed",
    "ACCOUNT_LOCKED": "User account locked",
    "PASSWORD_CHANGE": "User password changed",
    "PASSWORD_RESET": "Password reset completed",
    "PASSWORD_RESET_REQUESTED": "Password reset requested",
    "EMAIL_VERIFIED": "User email verified",
    "EMAIL_CHANGE": "User email changed",
    "ADMIN_ACTION": "Administrative action performed",
    "ADMIN_BOOTSTRAP": "User promoted to admin at startup",
    "RATE_LIMIT_HIT": "Rate limit exceeded",
}


def log_security_event(
    event_type: str,
    user_id: Optional[Any] = None,
    username: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    level: str = "warning",
) -> None:
    """
    Centralized security event logging function.

    Args:
        event_type: Type of security event (should be from SECURITY_EVENTS)
        user_id: ID of the user involved (if applicable)
        username: Username of the user involved (if applicable)
        details: Additional details about the event
        level: Log level ('info', 'warning', 'error')
    """
    if event_type not in SECURITY_EVENTS:
        logger.warning(f"Unknown security event type: {event_type}")

    request_data = {}
    if has_request_context():
        try:
            request_data = {
                "ip_address": get_remote_address(),
                "user_agent": request.headers.get("User-Agent", "Unknown"),
                "endpoint": request.endpoint,
                "method": request.method,
                "path": request.path,
            }
        except Exception as e:
            logger.debug(f"Failed to gather request context: {e}")

    event_data = {
        "event_type": event_type,
        "event_description": SECURITY_EVENTS.get(event_type, "Unknown security event"),
        "timestamp": utcnow().isoformat(),
        "user_id": user_id,
        "username": username,
        "details": details or {},
        "request_info": request_data,
    }
    event_data = {k: v for k, v in event_data.items() if v is not None}

    log_message = f"SECURITY_EVENT: {event_type}"
    if username:
        log_message += f" - User: {username}"
    if details:
        log_message += f" - Details: {details}"

    # "extra" keys must not clash with LogRecord attributes
    getattr(logger, level)(log_message, extra={"security_event": event_data})

    try:
        rollbar_level = "info" if level == "info" else "warning"
        rollbar.report_message(
            message=f"Security Event: {event_type}",
            level=rollbar_level,
            extra_data=event_data,
        )
    except Exception as e:
        logger.error(f"Failed to send security event to Rollbar: {e}")


def log_authentication_event(
    success: bool, username: str, reason: Optional[str] = None
) -> None:
    """Log a login attempt outcome."""
    if success:
        log_security_event("LOGIN_SUCCESS", username=username, level="info")
    else:
        log_security_event(
            "LOGIN_FAILURE",
            username=username,
            details={"reason": reason},
            level="warning",
        )


def log_account_locked(user_id, username: str, minutes: int) -> None:
    log_security_event(
        "ACCOUNT_LOCKED",
        user_id=user_id,
        username=username,
        details={"lockout_minutes": minutes},
        level="warning",
    )


def log_admin_action(
    admin_user_id,
    admin_username: str,
    action: str,
    target_user_id=None,
) -> None:
    """
    Log administrative actions for audit trail.

    Args:
        admin_user_id: ID of the admin performing the action
        admin_username: Username of the admin performing the action
        action: Description of the action performed
        target_user_id: ID of the user being acted upon (if applicable)
    """
    log_security_event(
        "ADMIN_ACTION",
        user_id=admin_user_id,
        username=admin_username,
        details={"action": action, "target_user_id": target_user_id},
        level="info",
    )


def log_rate_limit_exceeded(limit_type: str, user_id=None) -> None:
    log_security_event(
        "RATE_LIMIT_HIT",
        user_id=user_id,
        details={"limit_type": limit_type},
        level="warning",
    )


def log_password_event(
    event_type: str, user_id, username: str, admin_action: bool = False
) -> None:
    """
    Log password-related security events.

    Args:
        event_type: 'PASSWORD_CHANGE', 'PASSWORD_RESET' or 'PASSWORD_RESET_REQUESTED'
        user_id: ID of the user whose password was changed
        username: Username of the user whose password was changed
        admin_action: Whether this was performed by an admin
    """
    log_security_event(
        event_type,
        user_id=user_id,
        username=username,
        details={"admin_action": admin_action},
        level="info",
    )
