"""TAROTAPI MODELS MODULE"""

from tarotapi.models.user import User

__all__ = [
    "User",
]
