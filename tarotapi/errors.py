"""TAROT API ERRORS"""


class Error(Exception):
    def __init__(self, message):
        self.message = message
        super().__init__(message)

    @property
    def serialize(self):
        return {"error": self.message}


class UserNotFound(Error):
    pass


class UserDuplicated(Error):
    pass


class AuthError(Error):
    pass


class NotAllowed(Error):
    pass


class StorageError(Error):
    pass


class EmailDeliveryError(Error):
    pass


class InvalidCredentials(Error):
    """Raised when the username or password does not match."""

    def __init__(self, message: str, remaining_attempts: int | None = None):
        super().__init__(message)
        self.remaining_attempts = remaining_attempts


class AccountLocked(Error):
    """Raised when a user account is locked due to too many failed login attempts."""

    def __init__(
        self,
        message: str,
        minutes_remaining: int | None = None,
        just_locked: bool = False,
    ):
        super().__init__(message)
        self.minutes_remaining = minutes_remaining
        self.just_locked = just_locked

    @property
    def serialize(self):
        return {
            "error": self.message,
            "error_code": "account_locked",
            "minutes_remaining": self.minutes_remaining,
        }


class InvalidToken(Error):
    pass


class TokenExpired(Error):
    pass


class RateLimited(Error):
    """Raised when an email is requested again before the cooldown elapsed."""

    def __init__(self, message: str, wait_minutes: int):
        super().__init__(message)
        self.wait_minutes = wait_minutes

    @property
    def serialize(self):
        return {"error": self.message, "waitMinutes": self.wait_minutes}
