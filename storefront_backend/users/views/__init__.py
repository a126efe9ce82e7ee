from .me import MeView
from .notifications import UserNotificationViewSet

__all__ = [
    "MeView",
    "UserNotificationViewSet",
]
