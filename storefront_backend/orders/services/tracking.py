# orders/services/tracking.py

"""
ORDER TRACKING TOKENS

Purpose:
- Issue the opaque public token (40 hex chars, 160 bits of entropy).
- Lazily backfill tokens for orders created before tokens existed.
- Project an order into the PUBLIC tracking view.

Rules:
- The public projection never includes the raw order id, customer identity,
  address, items or money. Only a short display id and lifecycle flags.
- Issuance is compare-and-set (tracking_token IS NULL) so two concurrent
  readers never overwrite each other's token.
"""

from __future__ import annotations

import logging
import secrets

from orders.models import Order
from orders.services.exceptions import OrderNotFoundError

logger = logging.getLogger(__name__)

TOKEN_BYTES = 20


def generate_tracking_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def ensure_tracking_token(order: Order) -> str:
    """
    Return the order's token, issuing one first if it has none.
    """
    if order.tracking_token:
        return order.tracking_token

    token = generate_tracking_token()
    updated = Order.objects.filter(pk=order.pk, tracking_token__isnull=True).update(
        tracking_token=token
    )

    if updated:
        order.tracking_token = token
        logger.info("Tracking token issued", extra={"order_id": str(order.pk)})
    else:
        # Someone else issued it first
        order.tracking_token = (
            Order.objects.values_list("tracking_token", flat=True).get(pk=order.pk)
        )

    return order.tracking_token


def backfill_missing_tracking_tokens() -> int:
    issued = 0
    for order in Order.objects.filter(tracking_token__isnull=True).only("pk", "tracking_token"):
        ensure_tracking_token(order)
        issued += 1
    return issued


def tracking_projection(order: Order) -> dict:
    return {
        "tracking_id": order.display_id,
        "state": order.state,
        "created_at": order.created_at,
        "is_paid": order.is_paid,
        "paid_at": order.paid_at,
        "is_delivered": order.is_delivered,
        "delivered_at": order.delivered_at,
        "is_cancelled": order.is_cancelled,
        "cancelled_at": order.cancelled_at,
        "is_returned": order.is_returned,
        "returned_at": order.returned_at,
        "refund_status": order.refund_status,
        "return_status": order.return_status,
    }


def get_tracking_status(token: str | None) -> dict:
    """
    Public, unauthenticated lookup by tracking token.

    Raises OrderNotFoundError for blank or unknown tokens.
    """
    token = (token or "").strip()
    if not token:
        raise OrderNotFoundError("Tracking link is invalid", code="TRACKING_NOT_FOUND")

    order = Order.objects.filter(tracking_token=token).first()
    if order is None:
        raise OrderNotFoundError("Tracking link is invalid", code="TRACKING_NOT_FOUND")

    return tracking_projection(order)
