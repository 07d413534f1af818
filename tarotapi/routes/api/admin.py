"""Admin user management routes"""

import logging

from flask import jsonify, request
import rollbar

from tarotapi import user_service
from tarotapi.errors import NotAllowed, UserDuplicated, UserNotFound
from tarotapi.routes.api import endpoints, error
from tarotapi.utils.session import admin_required, current_user
from tarotapi.validators import (
    validate_admin_password_reset,
    validate_email_change,
)

logger = logging.getLogger()


def _generic_error(e):
    logger.error("[ROUTER]: " + str(e))
    rollbar.report_exc_info()
    return error(status=500, detail="Internal Server Error")


@endpoints.route("/admin/users", strict_slashes=False, methods=["GET"])
@admin_required
def get_users():
    """
    List every account ordered by username.

    **Access**: Admin session required

    **Success Response Schema**:
    ```json
    [
      {
        "id": 2,
        "username": "bob",
        "email": "bob@example.com",
        "email_verified": false,
        "display_name": "Bob",
        "is_admin": false,
        "created_at": "2025-01-15T10:30:00",
        "last_login": null,
        "failed_login_attempts": 0,
        "account_locked_until": null
      }
    ]
    ```
    """
    logger.info("[ROUTER]: Getting all users")
    try:
        users = user_service.list_users()
    except Exception as e:
        return _generic_error(e)
    return jsonify([u.serialize(include=["admin"]) for u in users]), 200


@endpoints.route("/admin/unverified-count", strict_slashes=False, methods=["GET"])
@admin_required
def get_unverified_count():
    try:
        count = user_service.count_unverified()
    except Exception as e:
        return _generic_error(e)
    return jsonify({"count": count}), 200


@endpoints.route(
    "/admin/users/<int:user_id>/reset-password",
    strict_slashes=False,
    methods=["PUT"],
)
@admin_required
@validate_admin_password_reset
def admin_reset_password(user_id):
    """
    Set a user's password without knowing the old one.

    **Error Responses**:
    - `400 Bad Request`: Short password, or the admin targeted their own account
    - `403 Forbidden`: Not an admin
    - `404 Not Found`: User does not exist
    """
    logger.info(f"[ROUTER]: Admin password reset for user {user_id}")
    new_password = request.get_json(silent=True)["newPassword"]
    try:
        user_service.admin_reset_password(current_user(), user_id, new_password)
    except NotAllowed as e:
        return error(status=400, detail=e.message)
    except UserNotFound as e:
        return error(status=404, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return jsonify({"message": "Password reset successfully"}), 200


@endpoints.route(
    "/admin/users/<int:user_id>/verify", strict_slashes=False, methods=["PUT"]
)
@admin_required
def admin_verify_user(user_id):
    """Mark a user's email as verified and notify them"""
    logger.info(f"[ROUTER]: Admin verifying user {user_id}")
    try:
        user_service.admin_verify_user(current_user(), user_id)
    except UserNotFound as e:
        return error(status=404, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return jsonify({"message": "User verified successfully"}), 200


@endpoints.route(
    "/admin/users/<int:user_id>/email", strict_slashes=False, methods=["PUT"]
)
@admin_required
@validate_email_change
def admin_change_email(user_id):
    """
    Replace a user's email. The account becomes unverified and no
    verification email is sent.

    **Error Responses**:
    - `400 Bad Request`: Missing or malformed email, own account, or the
      address is in use
    - `403 Forbidden`: Not an admin
    - `404 Not Found`: User does not exist
    """
    logger.info(f"[ROUTER]: Admin changing email for user {user_id}")
    email = request.get_json(silent=True)["email"]
    try:
        user = user_service.admin_change_email(current_user(), user_id, email)
    except (NotAllowed, UserDuplicated) as e:
        return error(status=400, detail=e.message)
    except UserNotFound as e:
        return error(status=404, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return (
        jsonify(
            {
                "message": "Email updated successfully",
                "email": user.email,
                "email_verified": False,
            }
        ),
        200,
    )


@endpoints.route("/admin/users/<int:user_id>", strict_slashes=False, methods=["DELETE"])
@admin_required
def delete_user(user_id):
    logger.info(f"[ROUTER]: Admin deleting user {user_id}")
    try:
        user_service.delete_user(current_user(), user_id)
    except NotAllowed as e:
        return error(status=400, detail=e.message)
    except UserNotFound as e:
        return error(status=404, detail=e.message)
    except Exception as e:
        return _generic_error(e)
    return (
        jsonify({"message": "User and all associated data deleted successfully"}),
        200,
    )
