"""TAROT API VALIDATORS"""

from functools import wraps
import re
import unicodedata

import bleach
from flask import request

from tarotapi.config import SETTINGS
from tarotapi.routes.api import error

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = SETTINGS.get("AUTH", {}).get("MIN_PASSWORD_LENGTH", 6)


def _json_body():
    return request.get_json(silent=True) or {}


def _has_text(json_data, *keys):
    """True when every key holds a non-empty string"""
    return all(
        isinstance(json_data.get(k), str) and json_data.get(k) for k in keys
    )


def sanitize_text(text, max_length=None):
    """
    Strip markup from user supplied text while preserving international
    characters
    """
    if not text:
        return text

    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)

    dangerous_patterns = [
        r"javascript:",
        r"vbscript:",
        r"on\w+\s*=",
        r"data:text/html",
    ]
    for pattern in dangerous_patterns:
        if re.search(pattern, text, re.IGNORECASE | re.DOTALL):
            raise ValueError("Invalid content detected")

    text = unicodedata.normalize("NFC", text)

    if max_length and len(text) > max_length:
        text = text[:max_length].strip()

    return text


def validate_email(email):
    if not isinstance(email, str) or not email.strip():
        raise ValueError("Email is required")

    email = email.strip().lower()

    if len(email) > 254:  # RFC 5321 limit
        raise ValueError("Email address too long")

    if not EMAIL_REGEX.match(email):
        raise ValueError("Invalid email format")

    return email


def validate_password(password, message=None):
    """Enforce the minimum password length"""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            message or f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


def validate_username(username):
    if not isinstance(username, str) or not username.strip():
        raise ValueError("Username is required")

    clean_username = sanitize_text(username, max_length=80)
    if not clean_username:
        raise ValueError("Username cannot be empty")

    for char in clean_username:
        if unicodedata.category(char).startswith("C") or char.isspace():
            raise ValueError("Username contains invalid characters")

    return clean_username


def validate_display_name(display_name):
    """Optional; markup is removed and the result capped at 120 characters"""
    if display_name is None:
        return None
    return sanitize_text(display_name, max_length=120) or None


def validate_registration(func):
    """User Registration Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()

        if not _has_text(json_data, "username", "email", "password"):
            return error(
                status=400, detail="Username, email, and password are required"
            )

        try:
            json_data["username"] = validate_username(json_data["username"])
            json_data["email"] = validate_email(json_data["email"])
            validate_password(json_data["password"])
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_login(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()
        if not _has_text(json_data, "username", "password"):
            return error(status=400, detail="Username and password are required")
        return func(*args, **kwargs)

    return wrapper


def validate_email_request(func):
    """Resend verification and forgot password both need just an email"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()
        email = json_data.get("email")
        if not isinstance(email, str) or not email.strip():
            return error(status=400, detail="Email is required")
        json_data["email"] = email.strip().lower()
        return func(*args, **kwargs)

    return wrapper


def validate_password_reset(func):
    """Token based password reset validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()

        if not _has_text(json_data, "token", "newPassword"):
            return error(status=400, detail="Token and new password are required")

        try:
            validate_password(json_data["newPassword"])
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_profile_update(func):
    """Profile Update Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()

        try:
            if "display_name" in json_data:
                json_data["display_name"] = validate_display_name(
                    json_data["display_name"]
                )
            if json_data.get("username"):
                json_data["username"] = validate_username(json_data["username"])
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_password_change(func):
    """Simple Password Change Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()

        if not _has_text(json_data, "currentPassword", "newPassword"):
            return error(status=400, detail="Current and new passwords are required")

        try:
            validate_password(
                json_data["newPassword"],
                message=(
                    f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
                ),
            )
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_email_change(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()

        try:
            json_data["email"] = validate_email(json_data.get("email"))
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_admin_password_reset(func):
    """Admin forced password reset validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = _json_body()

        try:
            validate_password(json_data.get("newPassword"))
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper
