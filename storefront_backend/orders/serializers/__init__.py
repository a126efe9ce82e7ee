# orders/serializers/__init__.py

from .analytics import AiDiscountSummarySerializer, DashboardSummarySerializer
from .order import OrderItemSerializer, OrderSerializer
from .order_commands import (
    OrderCreateSerializer,
    PaymentResultSerializer,
    ReasonSerializer,
)
from .tracking import TrackingStatusSerializer, TrackingTokenSerializer

__all__ = [
    "AiDiscountSummarySerializer",
    "DashboardSummarySerializer",
    "OrderItemSerializer",
    "OrderSerializer",
    "OrderCreateSerializer",
    "PaymentResultSerializer",
    "ReasonSerializer",
    "TrackingStatusSerializer",
    "TrackingTokenSerializer",
]
