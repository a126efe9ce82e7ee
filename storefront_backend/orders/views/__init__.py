# orders/views/__init__.py

from .orders import OrderViewSet
from .tracking import TrackingStatusView

__all__ = [
    "OrderViewSet",
    "TrackingStatusView",
]
