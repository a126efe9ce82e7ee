# products/models/stock_movement.py

"""
INVENTORY LEDGER

Append-only record of every change to Product.count_in_stock.

GUARANTEES:
- Created ONCE, never edited
- Movement direction validated against reason
- Order-linked reasons (SALE, CANCELLATION) must reference an order
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        SALE = "SALE", "Order Paid"
        CANCELLATION = "CANCELLATION", "Order Cancelled (restock)"
        ADJUSTMENT = "ADJUSTMENT", "Manual Adjustment"

    REASON_TO_MOVEMENT = {
        Reason.SALE: MovementType.OUT,
        Reason.CANCELLATION: MovementType.IN,
        Reason.ADJUSTMENT: None,
    }

    ORDER_REASONS = {Reason.SALE, Reason.CANCELLATION}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_movements"
    )

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="products_mv_product_idx"),
            models.Index(fields=["order", "reason"], name="products_mv_order_idx"),
        ]

    def clean(self):
        if not self.quantity or int(self.quantity) <= 0:
            raise ValidationError("quantity must be >= 1")

        expected = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected and self.movement_type != expected:
            raise ValidationError(
                f"Reason {self.reason} requires movement_type {expected}"
            )

        if self.reason in self.ORDER_REASONS and not self.order_id:
            raise ValidationError(f"Reason {self.reason} requires an order")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Stock movements are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.movement_type} {self.quantity} x {self.product_id} ({self.reason})"
