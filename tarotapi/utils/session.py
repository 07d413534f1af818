"""Cookie session helpers for the Tarot API"""

from functools import wraps
import logging

from flask import jsonify, session

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def _store():
    from tarotapi import credential_store

    return credential_store


def login_user(user):
    """Bind ``user`` to a fresh session cookie"""
    session.clear()
    session[SESSION_USER_KEY] = user.id
    session.permanent = True
    logger.debug(f"[AUTH]: Session started for user {user.id}")


def logout_user():
    user_id = session.get(SESSION_USER_KEY)
    session.clear()
    if user_id is not None:
        logger.debug(f"[AUTH]: Session ended for user {user_id}")


def current_user():
    """Load the session's user from the credential store.

    A session that points at a deleted account is cleared and the request is
    treated as anonymous.
    """
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = _store().find_by_id(user_id)
    if user is None:
        logger.warning(f"[AUTH]: Session references missing user {user_id}, clearing")
        session.clear()
    return user


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_user() is None:
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()
        if user is None or not user.is_admin:
            logger.warning("[AUTH]: Non-admin request to admin endpoint")
            return jsonify({"error": "Forbidden: Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function
