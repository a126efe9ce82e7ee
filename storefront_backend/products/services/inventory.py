# products/services/inventory.py

"""
======================================================
PATH: products/services/inventory.py
======================================================
INVENTORY COLLABORATOR (ORDER LIFECYCLE)

Purpose:
- decrement_stock(): order paid -> stock leaves the shelf
- increment_stock(): order cancelled -> stock goes back

Rules:
- Quantities are integer units >= 1.
- Counter changes are single UPDATE ... SET count = count +/- qty statements
  (F expressions), never read-modify-write in Python.
- Every change writes exactly one StockMovement row in the same transaction.
- Missing products are skipped with a warning (the order snapshot survives
  catalog deletions); callers decide whether that matters.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from products.models.product import Product
from products.models.stock_movement import StockMovement

logger = logging.getLogger(__name__)


def _require_positive_int(value, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if v <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return v


def _apply_delta(
    *,
    product_id,
    delta: int,
    reason: str,
    movement_type: str,
    quantity: int,
    order=None,
    user=None,
) -> int | None:
    updated = Product.objects.filter(pk=product_id).update(
        count_in_stock=F("count_in_stock") + delta
    )
    if not updated:
        logger.warning(
            "Stock change skipped: product no longer exists",
            extra={"product_id": str(product_id), "reason": reason},
        )
        return None

    StockMovement.objects.create(
        product_id=product_id,
        order=order,
        movement_type=movement_type,
        reason=reason,
        quantity=quantity,
        performed_by=user,
    )

    return Product.objects.values_list("count_in_stock", flat=True).get(pk=product_id)


@transaction.atomic
def decrement_stock(*, product_id, quantity, order=None, user=None) -> int | None:
    """
    Take `quantity` units out of stock for a paid order.

    Returns the new count, or None when the product is gone.
    Stock is NOT re-validated here: a negative result is logged, not refused.
    """
    qty = _require_positive_int(quantity, field_name="quantity")

    remaining = _apply_delta(
        product_id=product_id,
        delta=-qty,
        reason=StockMovement.Reason.SALE,
        movement_type=StockMovement.MovementType.OUT,
        quantity=qty,
        order=order,
        user=user,
    )

    if remaining is not None and remaining < 0:
        logger.warning(
            "Product oversold",
            extra={"product_id": str(product_id), "count_in_stock": remaining},
        )

    return remaining


@transaction.atomic
def increment_stock(*, product_id, quantity, order=None, user=None) -> int | None:
    """
    Put `quantity` units back on the shelf for a cancelled order.
    """
    qty = _require_positive_int(quantity, field_name="quantity")

    return _apply_delta(
        product_id=product_id,
        delta=qty,
        reason=StockMovement.Reason.CANCELLATION,
        movement_type=StockMovement.MovementType.IN,
        quantity=qty,
        order=order,
        user=user,
    )
