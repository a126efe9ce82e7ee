# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Sellable catalog product (the slice of the catalog orders depend on).

    STOCK MODEL:
    - count_in_stock is a plain counter mutated ONLY through
      products.services.inventory (F-expression updates + StockMovement ledger).
    - It is a signed integer: payment confirmation does not re-validate stock,
      so an oversell shows up as a negative count instead of a failed payment.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    image = models.CharField(max_length=500, blank=True, default="")

    # Current catalog price (orders snapshot it as original_unit_price)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    count_in_stock = models.IntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.unit_price is None or Decimal(self.unit_price) <= 0:
            raise ValidationError("Unit price must be greater than zero")
