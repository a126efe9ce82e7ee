# orders/services/checkout.py

"""
ORDER CHECKOUT (APPLICATION SERVICE)

Purpose:
- Turn a validated checkout payload into a persisted Order + OrderItems.

Hard rules:
- Quantities are integer units >= 1.
- Money values are computed server-side; client totals are advisory only
  (a mismatch is logged, never trusted).
- Line items are snapshots: name, image, charged price and catalog price are
  copied so later catalog edits never change an order.
- Stock is NOT touched here; it leaves the shelf on payment confirmation.

Pricing:
- items_price    = sum(qty * price)
- tax_price      = items_price * ORDER_TAX_RATE
- shipping_price = 0 when items_price > ORDER_FREE_SHIPPING_THRESHOLD,
                   else ORDER_SHIPPING_FEE
- total_price    = items_price + tax_price + shipping_price
- ai_discount_total      = sum(qty * (catalog price - charged price))
- ai_discount_item_count = number of lines charged below catalog price
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from orders.models import Order, OrderItem
from orders.services.exceptions import OrderValidationError
from orders.services.tracking import generate_tracking_token
from products.models import Product

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

ADDRESS_FIELDS = ("address", "city", "postal_code", "country")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise OrderValidationError("Invalid pricing values")


def _to_int_qty(value) -> int:
    if isinstance(value, bool):
        raise OrderValidationError("Invalid order item data")
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise OrderValidationError("Invalid order item data")
    if qty <= 0:
        raise OrderValidationError("Invalid order item data")
    return qty


def _setting_money(name: str, default: str) -> Decimal:
    return Decimal(str(getattr(settings, name, default)))


def compute_pricing(lines: list[dict]) -> dict:
    """
    Server-side totals for already-normalized lines
    ({"quantity", "unit_price", "original_unit_price"}).
    """
    items_price = sum(
        (Decimal(line["quantity"]) * line["unit_price"] for line in lines),
        Decimal("0.00"),
    ).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    tax_rate = _setting_money("ORDER_TAX_RATE", "0.15")
    threshold = _setting_money("ORDER_FREE_SHIPPING_THRESHOLD", "100.00")
    shipping_fee = _setting_money("ORDER_SHIPPING_FEE", "10.00")

    tax_price = (items_price * tax_rate).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    shipping_price = Decimal("0.00") if items_price > threshold else shipping_fee.quantize(TWOPLACES)
    total_price = (items_price + tax_price + shipping_price).quantize(TWOPLACES)

    ai_discount_total = Decimal("0.00")
    ai_discount_item_count = 0
    for line in lines:
        markdown = line["original_unit_price"] - line["unit_price"]
        if markdown > 0:
            ai_discount_total += markdown * line["quantity"]
            ai_discount_item_count += 1

    return {
        "items_price": items_price,
        "tax_price": tax_price,
        "shipping_price": shipping_price,
        "total_price": total_price,
        "ai_discount_total": ai_discount_total.quantize(TWOPLACES),
        "ai_discount_item_count": ai_discount_item_count,
    }


def _validate_address(shipping_address) -> dict:
    if not isinstance(shipping_address, dict):
        raise OrderValidationError("Invalid shipping address")

    cleaned = {}
    for field in ADDRESS_FIELDS:
        value = str(shipping_address.get(field) or "").strip()
        if not value:
            raise OrderValidationError("Invalid shipping address")
        cleaned[field] = value
    return cleaned


def _normalize_lines(order_items) -> list[dict]:
    if not order_items:
        raise OrderValidationError("No order items")

    product_ids = [item.get("product") for item in order_items]
    if any(not pid for pid in product_ids):
        raise OrderValidationError("Invalid order item data")

    try:
        products = {
            str(p.pk): p
            for p in Product.objects.filter(pk__in=product_ids, is_active=True)
        }
    except (ValueError, DjangoValidationError):
        raise OrderValidationError("Invalid order item data")

    lines = []
    for raw in order_items:
        product = products.get(str(raw.get("product")))
        if product is None:
            raise OrderValidationError(
                f"Product is no longer available: {raw.get('name') or raw.get('product')}"
            )

        qty = _to_int_qty(raw.get("qty"))
        unit_price = _money(raw.get("price"))
        catalog_price = _money(product.unit_price)

        if unit_price <= 0:
            raise OrderValidationError("Invalid order item data")
        if unit_price > catalog_price:
            raise OrderValidationError(
                f"Price for {product.name} has changed, please refresh your cart"
            )

        lines.append(
            {
                "product": product,
                "name": (raw.get("name") or product.name).strip(),
                "image": (raw.get("image") or product.image or "").strip(),
                "quantity": qty,
                "unit_price": unit_price,
                "original_unit_price": catalog_price,
            }
        )

    return lines


def _log_claimed_totals(*, user, claimed: dict, computed: dict):
    mismatched = {
        key: str(claimed[key])
        for key in ("items_price", "tax_price", "shipping_price", "total_price")
        if claimed.get(key) is not None and _money(claimed[key]) != computed[key]
    }
    if mismatched:
        logger.warning(
            "Client order totals differ from server totals",
            extra={"user_id": str(user.pk), "claimed": mismatched},
        )


@transaction.atomic
def create_order(*, user, payload: dict) -> Order:
    """
    Create a new order in state `created` for `user`.

    `payload` keys: shipping_address{address, city, postal_code, country},
    payment_method, order_items[{product, name, image, qty, price}],
    optional discount and client-claimed totals.
    """
    address = _validate_address(payload.get("shipping_address"))

    payment_method = str(payload.get("payment_method") or "").strip()
    if not payment_method:
        raise OrderValidationError("Payment method is required")

    lines = _normalize_lines(payload.get("order_items"))

    # Client totals must at least be numeric
    claimed = {
        key: payload.get(key)
        for key in ("items_price", "tax_price", "shipping_price", "total_price")
    }
    for value in claimed.values():
        _money(value)

    discount_percent = _money(payload.get("discount"))
    if discount_percent < 0 or discount_percent > 100:
        raise OrderValidationError("Invalid pricing values")

    pricing = compute_pricing(lines)
    _log_claimed_totals(user=user, claimed=claimed, computed=pricing)

    order = Order.objects.create(
        user=user,
        shipping_address=address["address"],
        shipping_city=address["city"],
        shipping_postal_code=address["postal_code"],
        shipping_country=address["country"],
        payment_method=payment_method,
        discount_percent=discount_percent,
        tracking_token=generate_tracking_token(),
        **pricing,
    )

    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                product=line["product"],
                position=position,
                name=line["name"],
                image=line["image"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                original_unit_price=line["original_unit_price"],
            )
            for position, line in enumerate(lines)
        ]
    )

    logger.info(
        "Order created",
        extra={
            "order_id": str(order.pk),
            "user_id": str(user.pk),
            "total_price": str(order.total_price),
            "items": len(lines),
        },
    )

    return order
