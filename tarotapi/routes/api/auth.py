"""Authentication and self-service account routes"""

import logging

from flask import jsonify, request
import rollbar

from tarotapi import auth_service, limiter, user_service
from tarotapi.errors import (
    AccountLocked,
    AuthError,
    InvalidCredentials,
    InvalidToken,
    NotAllowed,
    RateLimited,
    TokenExpired,
    UserDuplicated,
)
from tarotapi.routes.api import endpoints, error
from tarotapi.utils.rate_limiting import (
    RateLimitConfig,
    get_rate_limit_key_for_auth,
    is_rate_limiting_disabled,
)
from tarotapi.utils.session import (
    current_user,
    login_required,
    login_user,
    logout_user,
)
from tarotapi.validators import (
    validate_email_change,
    validate_email_request,
    validate_login,
    validate_password_change,
    validate_password_reset,
    validate_profile_update,
    validate_registration,
)

logger = logging.getLogger()

RESET_REQUESTED_MESSAGE = (
    "If that email is registered, a password reset link has been sent."
)


def _generic_error(e):
    logger.error("[ROUTER]: " + str(e))
    rollbar.report_exc_info()
    return error(status=500, detail="Internal Server Error")


@endpoints.route("/auth/register", strict_slashes=False, methods=["POST"])
@limiter.limit(
    lambda: ";".join(RateLimitConfig.get_auth_limits()),
    key_func=get_rate_limit_key_for_auth,
    exempt_when=is_rate_limiting_disabled,
)
@validate_registration
def register():
    """
    Create an account and email a verification link.

    **Request Schema**:
    ```json
    {"username": "alice", "email": "alice@example.com", "password": "secret"}
    ```

    The account starts unverified and no session is created.

    **Error Responses**:
    - `400 Bad Request`: Missing fields, malformed email, short password,
      or the username or email is already taken
    - `429 Too Many Requests`: Rate limit exceeded
    """
    logger.info("[ROUTER]: Registering user")
    body = request.get_json(silent=True)
    try:
        auth_service.register(body["username"], body["password"], body["email"])
    except UserDuplicated as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return (
        jsonify(
            {
                "message": (
                    "Account created! Please check your email to verify your "
                    "account."
                ),
                "requiresVerification": True,
            }
        ),
        201,
    )


@endpoints.route("/auth/login", strict_slashes=False, methods=["POST"])
@limiter.limit(
    lambda: ";".join(RateLimitConfig.get_auth_limits()),
    key_func=get_rate_limit_key_for_auth,
    exempt_when=is_rate_limiting_disabled,
)
@validate_login
def login():
    """
    Authenticate with username and password and start a session.

    Unverified accounts may log in; the client shows a reminder instead.

    **Success Response Schema**:
    ```json
    {
      "id": 1,
      "username": "alice",
      "email": "alice@example.com",
      "email_verified": true,
      "display_name": "Alice",
      "is_admin": false
    }
    ```

    **Error Responses**:
    - `400 Bad Request`: Username or password missing
    - `401 Unauthorized`: Incorrect credentials, with the remaining attempts
      in the message
    - `401 Unauthorized`: Account locked, with `error_code` set to
      `account_locked` and `minutes_remaining`
    - `429 Too Many Requests`: Rate limit exceeded
    """
    body = request.get_json(silent=True)
    try:
        user = auth_service.login(body["username"], body["password"])
    except AccountLocked as e:
        logger.warning("[ROUTER]: " + e.message)
        return jsonify(e.serialize), 401
    except InvalidCredentials as e:
        logger.warning("[ROUTER]: " + e.message)
        return error(status=401, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    login_user(user)
    return jsonify(user.serialize()), 200


@endpoints.route("/auth/logout", strict_slashes=False, methods=["POST"])
def logout():
    logout_user()
    return jsonify({"message": "Logged out successfully"}), 200


@endpoints.route("/auth/verify/<token>", strict_slashes=False, methods=["GET"])
def verify_email(token):
    """
    Consume an email verification token.

    **Error Responses**:
    - `400 Bad Request`: Unknown token, or the token has expired
    """
    try:
        auth_service.verify_email(token)
    except (InvalidToken, TokenExpired) as e:
        logger.info("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return (
        jsonify({"message": "Email verified successfully! You can now log in."}),
        200,
    )


@endpoints.route(
    "/auth/resend-verification", strict_slashes=False, methods=["POST"]
)
@limiter.limit(
    lambda: ";".join(RateLimitConfig.get_password_reset_limits()),
    key_func=get_rate_limit_key_for_auth,
    exempt_when=is_rate_limiting_disabled,
)
@validate_email_request
def resend_verification():
    """
    Send a new verification link.

    Unknown addresses get a neutral answer so the endpoint cannot be used to
    discover accounts.

    **Error Responses**:
    - `400 Bad Request`: Email missing or already verified
    - `429 Too Many Requests`: Requested again within the cooldown; the body
      carries `waitMinutes`
    """
    email = request.get_json(silent=True)["email"]
    try:
        sent = auth_service.resend_verification(email)
    except NotAllowed as e:
        return error(status=400, detail=e.message)
    except RateLimited as e:
        logger.info("[ROUTER]: " + e.message)
        return jsonify(e.serialize), 429
    except Exception as e:
        return _generic_error(e)
    if not sent:
        return (
            jsonify(
                {
                    "message": (
                        "If that email is registered, a verification link has "
                        "been sent."
                    )
                }
            ),
            200,
        )
    return (
        jsonify({"message": "Verification email sent! Please check your inbox."}),
        200,
    )


@endpoints.route("/auth/forgot-password", strict_slashes=False, methods=["POST"])
@limiter.limit(
    lambda: ";".join(RateLimitConfig.get_password_reset_limits()),
    key_func=get_rate_limit_key_for_auth,
    exempt_when=is_rate_limiting_disabled,
)
@validate_email_request
def forgot_password():
    """
    Email a password reset link to a verified account.

    The same success message is returned whether or not the address belongs
    to a verified account.

    **Error Responses**:
    - `400 Bad Request`: Email missing
    - `429 Too Many Requests`: A reset email was sent within the cooldown
    """
    email = request.get_json(silent=True)["email"]
    try:
        auth_service.request_password_reset(email)
    except RateLimited as e:
        logger.info("[ROUTER]: " + e.message)
        return jsonify(e.serialize), 429
    except Exception as e:
        return _generic_error(e)
    return jsonify({"message": RESET_REQUESTED_MESSAGE}), 200


@endpoints.route("/auth/reset-password", strict_slashes=False, methods=["POST"])
@limiter.limit(
    lambda: ";".join(RateLimitConfig.get_password_reset_limits()),
    exempt_when=is_rate_limiting_disabled,
)
@validate_password_reset
def reset_password():
    """
    Set a new password using an emailed reset token.

    **Request Schema**:
    ```json
    {"token": "<64 hex characters>", "newPassword": "new-secret"}
    ```

    **Error Responses**:
    - `400 Bad Request`: Missing fields, short password, unknown or expired
      token
    """
    body = request.get_json(silent=True)
    try:
        auth_service.reset_password(body["token"], body["newPassword"])
    except (InvalidToken, TokenExpired) as e:
        logger.info("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return (
        jsonify(
            {
                "message": (
                    "Password reset successfully! You can now log in with your "
                    "new password."
                )
            }
        ),
        200,
    )


@endpoints.route(
    "/auth/validate-reset-token/<token>", strict_slashes=False, methods=["GET"]
)
def validate_reset_token(token):
    """Let the client check a reset link before showing the form"""
    try:
        auth_service.validate_reset_token(token)
    except (InvalidToken, TokenExpired) as e:
        return jsonify({"valid": False, "error": e.message}), 400
    except Exception as e:
        return _generic_error(e)
    return jsonify({"valid": True}), 200


@endpoints.route("/auth/me", strict_slashes=False, methods=["GET"])
def get_me():
    user = current_user()
    if user is None:
        return error(status=401, detail="Not authenticated")
    return jsonify(user.serialize()), 200


@endpoints.route("/auth/profile", strict_slashes=False, methods=["PUT"])
@login_required
@validate_profile_update
def update_profile():
    """
    Change the display name and optionally the username.

    **Error Responses**:
    - `400 Bad Request`: The requested username is taken
    - `401 Unauthorized`: No session
    """
    logger.info("[ROUTER]: Updating profile")
    body = request.get_json(silent=True) or {}
    try:
        user = user_service.update_profile(
            current_user(),
            display_name=body.get("display_name"),
            username=body.get("username"),
        )
    except UserDuplicated as e:
        return error(status=400, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return jsonify(user.serialize()), 200


@endpoints.route("/auth/password", strict_slashes=False, methods=["PUT"])
@login_required
@validate_password_change
def change_password():
    logger.info("[ROUTER]: Changing password")
    body = request.get_json(silent=True)
    try:
        user_service.change_password(
            current_user(), body["currentPassword"], body["newPassword"]
        )
    except AuthError as e:
        logger.warning("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return jsonify({"message": "Password updated successfully"}), 200


@endpoints.route("/auth/email", strict_slashes=False, methods=["PUT"])
@login_required
@validate_email_change
def change_email():
    """
    Change the account email. The new address must be verified again.

    **Error Responses**:
    - `400 Bad Request`: Missing or malformed email, unchanged email, or the
      address belongs to another account
    - `401 Unauthorized`: No session
    """
    logger.info("[ROUTER]: Changing email")
    email = request.get_json(silent=True)["email"]
    try:
        user = user_service.change_email(current_user(), email)
    except (NotAllowed, UserDuplicated) as e:
        return error(status=400, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    data = user.serialize()
    data["message"] = (
        "Email updated. Please check your inbox to verify your new email address."
    )
    return jsonify(data), 200
