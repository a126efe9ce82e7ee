# orders/models/order_item.py

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class OrderItem(models.Model):
    """
    Line item snapshot, copied at checkout.

    Never re-derived from the live catalog: product may later be renamed,
    repriced or deleted (product -> NULL) without touching the order.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )

    position = models.PositiveSmallIntegerField(default=0)

    name = models.CharField(max_length=255)
    image = models.CharField(max_length=500, blank=True, default="")

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    # Price actually charged (may be haggled below the catalog price)
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    # Catalog price at checkout
    original_unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )

    class Meta:
        ordering = ["position", "id"]

    @property
    def line_total(self) -> Decimal:
        return (Decimal(self.quantity) * Decimal(self.unit_price)).quantize(Decimal("0.01"))

    @property
    def discount_per_unit(self) -> Decimal:
        diff = Decimal(self.original_unit_price) - Decimal(self.unit_price)
        return diff if diff > 0 else Decimal("0.00")

    def __str__(self):
        return f"{self.name} x{self.quantity}"
