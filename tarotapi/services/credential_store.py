"""CREDENTIAL STORE

Persistence capability the authentication services depend on. The services
only see this interface; the Flask application wires the SQLAlchemy-backed
implementation and tests can substitute an in-memory one.
"""

import abc
import logging

import rollbar
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tarotapi.errors import StorageError, UserDuplicated

logger = logging.getLogger(__name__)

VERIFICATION = "verification"
RESET = "reset"

TOKEN_COLUMNS = {
    VERIFICATION: "verification_token",
    RESET: "reset_token",
}


class CredentialStore(abc.ABC):
    """Lookup and update user records by identity or token."""

    @abc.abstractmethod
    def find_by_id(self, user_id):
        pass

    @abc.abstractmethod
    def find_by_username(self, username):
        pass

    @abc.abstractmethod
    def find_by_email(self, email):
        pass

    @abc.abstractmethod
    def find_by_token(self, token, kind):
        """Return the user whose token of the given kind equals ``token``."""

    @abc.abstractmethod
    def persist(self, user_id, fields):
        """Write ``fields`` onto the user and return the updated record."""

    @abc.abstractmethod
    def create_user(self, fields):
        pass

    @abc.abstractmethod
    def delete_user(self, user_id):
        """Delete the user, returning False when no such user exists."""

    @abc.abstractmethod
    def list_users(self):
        pass

    @abc.abstractmethod
    def count_unverified(self):
        pass


class SQLAlchemyCredentialStore(CredentialStore):
    """Credential store over the ``users`` table"""

    def __init__(self, db):
        self.db = db

    @property
    def _model(self):
        from tarotapi.models import User

        return User

    def _fail(self, operation, error):
        self.db.session.rollback()
        logger.error(f"[DB]: {operation} failed: {error}")
        rollbar.report_exc_info()
        raise StorageError("Storage operation failed") from error

    def find_by_id(self, user_id):
        logger.debug(f"[DB]: QUERY user id={user_id}")
        try:
            return self.db.session.get(self._model, user_id)
        except SQLAlchemyError as e:
            self._fail("find_by_id", e)

    def find_by_username(self, username):
        if not username:
            return None
        logger.debug("[DB]: QUERY user by username")
        try:
            return self._model.query.filter_by(username=username).first()
        except SQLAlchemyError as e:
            self._fail("find_by_username", e)

    def find_by_email(self, email):
        if not email:
            return None
        logger.debug("[DB]: QUERY user by email")
        try:
            return self._model.query.filter_by(email=email.lower()).first()
        except SQLAlchemyError as e:
            self._fail("find_by_email", e)

    def find_by_token(self, token, kind):
        column = TOKEN_COLUMNS.get(kind)
        if column is None:
            raise ValueError(f"Unknown token kind: {kind}")
        if not token:
            return None
        logger.debug(f"[DB]: QUERY user by {kind} token")
        try:
            return self._model.query.filter(
                getattr(self._model, column) == token
            ).first()
        except SQLAlchemyError as e:
            self._fail("find_by_token", e)

    def persist(self, user_id, fields):
        try:
            user = self.db.session.get(self._model, user_id)
            if user is None:
                return None
            for key, value in fields.items():
                setattr(user, key, value)
            logger.debug(f"[DB]: UPDATE user id={user_id} fields={sorted(fields)}")
            self.db.session.commit()
            return user
        except SQLAlchemyError as e:
            self._fail("persist", e)

    def create_user(self, fields):
        fields = dict(fields)
        user = self._model(
            username=fields.pop("username"),
            password_hash=fields.pop("password_hash"),
            email=fields.pop("email", None),
            display_name=fields.pop("display_name", None),
            **fields,
        )
        try:
            logger.info("[DB]: ADD")
            self.db.session.add(user)
            self.db.session.commit()
        except IntegrityError as e:
            self.db.session.rollback()
            logger.warning(f"[DB]: Unique constraint violated creating user: {e}")
            raise UserDuplicated("Username already exists") from e
        except SQLAlchemyError as e:
            self._fail("create_user", e)
        return user

    def delete_user(self, user_id):
        try:
            user = self.db.session.get(self._model, user_id)
            if user is None:
                return False
            logger.info("[DB]: DELETE")
            self.db.session.delete(user)
            self.db.session.commit()
            return True
        except SQLAlchemyError as e:
            self._fail("delete_user", e)

    def list_users(self):
        try:
            return self._model.query.order_by(self._model.username).all()
        except SQLAlchemyError as e:
            self._fail("list_users", e)

    def count_unverified(self):
        try:
            return (
                self.db.session.query(func.count(self._model.id))
                .filter(self._model.email_verified.is_(False))
                .scalar()
            )
        except SQLAlchemyError as e:
            self._fail("count_unverified", e)
