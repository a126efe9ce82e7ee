# orders/models/order.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models


class Order(models.Model):
    """
    Storefront purchase order.

    Key rules:
    - Items and money fields are frozen at checkout (server computed).
    - Lifecycle state is DERIVED from the flag columns below
      (see orders.services.order_lifecycle.derive_state); flags are only
      written through orders.services.order_service, one compare-and-set
      UPDATE per transition.
    - A cancelled order can never be delivered (DB check constraint).
    - tracking_token is the ONLY key for unauthenticated lookups; it is
      issued once and only rotated by an admin.
    """

    REFUND_NONE = "none"
    REFUND_PENDING = "pending"
    REFUND_PROCESSED = "processed"

    REFUND_STATUS_CHOICES = [
        (REFUND_NONE, "None"),
        (REFUND_PENDING, "Pending"),
        (REFUND_PROCESSED, "Processed"),
    ]

    RETURN_NONE = "none"
    RETURN_PENDING = "pending"
    RETURN_REFUNDED = "refunded"

    RETURN_STATUS_CHOICES = [
        (RETURN_NONE, "None"),
        (RETURN_PENDING, "Pending"),
        (RETURN_REFUNDED, "Refunded"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    tracking_token = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Opaque public token for unauthenticated status lookup",
    )

    # Shipping snapshot
    shipping_address = models.CharField(max_length=255)
    shipping_city = models.CharField(max_length=120)
    shipping_postal_code = models.CharField(max_length=32)
    shipping_country = models.CharField(max_length=120)

    payment_method = models.CharField(max_length=40)
    payment_result = models.JSONField(
        default=dict,
        blank=True,
        help_text="Opaque gateway receipt (id, status, update_time, email_address)",
    )

    # Money fields (server authoritative, frozen at checkout)
    items_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    ai_discount_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    ai_discount_item_count = models.PositiveIntegerField(default=0)

    # Payment
    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)

    # Delivery
    is_delivered = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(null=True, blank=True)

    # Cancellation
    is_cancelled = models.BooleanField(default=False)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=500, blank=True, default="")
    refund_status = models.CharField(
        max_length=16, choices=REFUND_STATUS_CHOICES, default=REFUND_NONE
    )
    refund_at = models.DateTimeField(null=True, blank=True)

    # Return
    is_returned = models.BooleanField(default=False)
    returned_at = models.DateTimeField(null=True, blank=True)
    return_reason = models.CharField(max_length=500, blank=True, default="")
    return_status = models.CharField(
        max_length=16, choices=RETURN_STATUS_CHOICES, default=RETURN_NONE
    )
    return_refund_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="orders_user_created_idx"),
            models.Index(fields=["is_paid", "is_delivered"], name="orders_paid_delivered_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(is_cancelled=True, is_delivered=True),
                name="orders_not_cancelled_and_delivered",
            ),
            models.CheckConstraint(
                condition=~models.Q(is_cancelled=True, is_returned=True),
                name="orders_not_cancelled_and_returned",
            ),
        ]

    @property
    def display_id(self) -> str:
        return self.id.hex[:8].upper()

    @property
    def state(self) -> str:
        from orders.services.order_lifecycle import derive_state

        return derive_state(self)

    def __str__(self):
        return f"#{self.display_id} | {self.total_price} | {self.state}"
