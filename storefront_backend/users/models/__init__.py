# users/models/__init__.py

from .notification import UserNotification
from .user import User, UserManager

__all__ = [
    "User",
    "UserManager",
    "UserNotification",
]
