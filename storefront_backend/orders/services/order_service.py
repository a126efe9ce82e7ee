# orders/services/order_service.py

"""
======================================================
PATH: orders/services/order_service.py
======================================================
ORDER LIFECYCLE SERVICE (DOMAIN-CONTROLLED)

Every mutating operation follows the same flow, inside ONE transaction:

  1) Lock the row (SELECT ... FOR UPDATE)
  2) Authorize the actor (owner or admin) where the operation requires it
  3) Validate the transition (orders.services.order_lifecycle)
  4) Compare-and-set UPDATE keyed on the expected prior flags
     (0 rows updated -> ConcurrentOrderUpdateError, everything rolls back)
  5) Stock changes (products.services.inventory)
  6) Enqueue notification (dispatched after commit)

Any failure before commit leaves the order, stock and outbox untouched.
Notification delivery can never fail an operation.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from orders.models import Order, OrderNotification
from orders.services.exceptions import (
    ConcurrentOrderUpdateError,
    OrderNotFoundError,
    OrderPermissionError,
)
from orders.services.notifications import enqueue_order_notification
from orders.services.order_lifecycle import (
    STATE_FLAGS,
    OrderAction,
    derive_state,
    validate_transition,
)
from orders.services.tracking import (
    backfill_missing_tracking_tokens,
    generate_tracking_token,
)
from products.services.inventory import decrement_stock, increment_stock

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled by user"
DEFAULT_RETURN_REASON = "Return requested by user"


# ============================================================
# HELPERS
# ============================================================


def is_order_admin(actor) -> bool:
    return bool(actor is not None and getattr(actor, "is_admin", False))


def _lock_order(order_id) -> Order:
    try:
        return (
            Order.objects.select_for_update()
            .select_related("user")
            .get(pk=order_id)
        )
    except (Order.DoesNotExist, ValueError, DjangoValidationError):
        raise OrderNotFoundError("Order not found")


def _authorize(order: Order, actor, verb: str):
    if actor is None or not getattr(actor, "is_authenticated", False):
        raise OrderPermissionError(f"Not authorized to {verb} this order")
    if order.user_id != actor.pk and not is_order_admin(actor):
        raise OrderPermissionError(f"Not authorized to {verb} this order")


def _compare_and_set(order: Order, *, expected_state: str, changes: dict) -> Order:
    """
    Single conditional UPDATE: applies `changes` only if the row still has
    the flags of `expected_state`.
    """
    if not order.tracking_token:
        changes["tracking_token"] = generate_tracking_token()

    changes["updated_at"] = timezone.now()

    updated = Order.objects.filter(pk=order.pk, **STATE_FLAGS[expected_state]).update(**changes)

    if updated != 1:
        logger.warning(
            "Order changed concurrently",
            extra={"order_id": str(order.pk), "expected_state": str(expected_state)},
        )
        raise ConcurrentOrderUpdateError(
            "Order was modified by another request, please retry"
        )

    for field, value in changes.items():
        setattr(order, field, value)

    return order


def _log_transition(order: Order, action: str, from_state: str, actor=None):
    logger.info(
        "Order transition",
        extra={
            "order_id": str(order.pk),
            "action": str(action),
            "from_state": str(from_state),
            "to_state": str(order.state),
            "actor_id": str(actor.pk) if actor is not None else None,
        },
    )


# ============================================================
# READS
# ============================================================


def get_order_for_actor(*, order_id, actor) -> Order:
    """
    Owner or admin may read the full order.
    """
    try:
        order = (
            Order.objects.select_related("user")
            .prefetch_related("items")
            .get(pk=order_id)
        )
    except (Order.DoesNotExist, ValueError, DjangoValidationError):
        raise OrderNotFoundError("Order not found")

    _authorize(order, actor, "view")
    return order


def list_orders_for_user(*, user):
    return (
        Order.objects.filter(user=user)
        .prefetch_related("items")
        .order_by("-created_at")
    )


def list_orders_for_admin():
    """
    All orders, newest first. Issues missing tracking tokens first so the
    admin list always shows a shareable link.
    """
    issued = backfill_missing_tracking_tokens()
    if issued:
        logger.info("Tracking tokens backfilled", extra={"count": issued})

    return (
        Order.objects.select_related("user")
        .prefetch_related("items")
        .order_by("-created_at")
    )


# ============================================================
# TRANSITIONS
# ============================================================


@transaction.atomic
def confirm_payment(*, order_id, actor, payment_result: dict | None = None) -> Order:
    """
    created -> paid

    Stores the gateway receipt, takes each line's quantity out of stock and
    queues the confirmation email.
    """
    order = _lock_order(order_id)
    _authorize(order, actor, "pay for")

    from_state = derive_state(order)
    validate_transition(order=order, action=OrderAction.PAY)

    now = timezone.now()
    _compare_and_set(
        order,
        expected_state=from_state,
        changes={
            "is_paid": True,
            "paid_at": now,
            "payment_result": dict(payment_result or {}),
        },
    )

    for item in order.items.all():
        if item.product_id:
            decrement_stock(
                product_id=item.product_id,
                quantity=item.quantity,
                order=order,
                user=actor,
            )

    enqueue_order_notification(order=order, kind=OrderNotification.KIND_PAYMENT_CONFIRMED)

    _log_transition(order, OrderAction.PAY, from_state, actor)
    return order


@transaction.atomic
def confirm_delivery(*, order_id, actor=None) -> Order:
    """
    paid -> delivered (admin)
    """
    order = _lock_order(order_id)

    from_state = derive_state(order)
    validate_transition(order=order, action=OrderAction.DELIVER)

    _compare_and_set(
        order,
        expected_state=from_state,
        changes={"is_delivered": True, "delivered_at": timezone.now()},
    )

    _log_transition(order, OrderAction.DELIVER, from_state, actor)
    return order


@transaction.atomic
def cancel(*, order_id, actor, reason: str | None = None) -> Order:
    """
    paid -> refund_pending (owner or admin, within the cancel window)

    Puts every line's quantity back in stock.
    """
    order = _lock_order(order_id)
    _authorize(order, actor, "cancel")

    from_state = derive_state(order)
    validate_transition(order=order, action=OrderAction.CANCEL)

    _compare_and_set(
        order,
        expected_state=from_state,
        changes={
            "is_cancelled": True,
            "cancelled_at": timezone.now(),
            "cancel_reason": (reason or "").strip()[:500] or DEFAULT_CANCEL_REASON,
            "refund_status": Order.REFUND_PENDING,
        },
    )

    for item in order.items.all():
        if item.product_id:
            increment_stock(
                product_id=item.product_id,
                quantity=item.quantity,
                order=order,
                user=actor,
            )

    enqueue_order_notification(order=order, kind=OrderNotification.KIND_ORDER_CANCELLED)

    _log_transition(order, OrderAction.CANCEL, from_state, actor)
    return order


@transaction.atomic
def mark_refund_processed(*, order_id, actor=None) -> Order:
    """
    refund_pending -> refunded (admin)
    """
    order = _lock_order(order_id)

    from_state = derive_state(order)
    validate_transition(order=order, action=OrderAction.MARK_REFUNDED)

    _compare_and_set(
        order,
        expected_state=from_state,
        changes={
            "refund_status": Order.REFUND_PROCESSED,
            "refund_at": timezone.now(),
        },
    )

    enqueue_order_notification(order=order, kind=OrderNotification.KIND_REFUND_PROCESSED)

    _log_transition(order, OrderAction.MARK_REFUNDED, from_state, actor)
    return order


@transaction.atomic
def request_return(*, order_id, actor, reason: str | None = None) -> Order:
    """
    delivered -> return_pending (owner or admin, within the return window)

    Stock is not touched: returned goods are inspected before restocking.
    """
    order = _lock_order(order_id)
    _authorize(order, actor, "return")

    from_state = derive_state(order)
    validate_transition(order=order, action=OrderAction.REQUEST_RETURN)

    _compare_and_set(
        order,
        expected_state=from_state,
        changes={
            "is_returned": True,
            "returned_at": timezone.now(),
            "return_reason": (reason or "").strip()[:500] or DEFAULT_RETURN_REASON,
            "return_status": Order.RETURN_PENDING,
        },
    )

    enqueue_order_notification(order=order, kind=OrderNotification.KIND_RETURN_REQUESTED)

    _log_transition(order, OrderAction.REQUEST_RETURN, from_state, actor)
    return order


@transaction.atomic
def mark_return_refund_processed(*, order_id, actor=None) -> Order:
    """
    return_pending -> return_refunded (admin)
    """
    order = _lock_order(order_id)

    from_state = derive_state(order)
    validate_transition(order=order, action=OrderAction.MARK_RETURN_REFUNDED)

    _compare_and_set(
        order,
        expected_state=from_state,
        changes={
            "return_status": Order.RETURN_REFUNDED,
            "return_refund_at": timezone.now(),
        },
    )

    enqueue_order_notification(
        order=order, kind=OrderNotification.KIND_RETURN_REFUND_PROCESSED
    )

    _log_transition(order, OrderAction.MARK_RETURN_REFUNDED, from_state, actor)
    return order


@transaction.atomic
def regenerate_tracking_token(*, order_id, actor=None) -> str:
    """
    Replace the order's tracking token; the old link stops working.
    """
    order = _lock_order(order_id)

    token = generate_tracking_token()
    Order.objects.filter(pk=order.pk).update(tracking_token=token, updated_at=timezone.now())

    logger.info(
        "Tracking token regenerated",
        extra={
            "order_id": str(order.pk),
            "actor_id": str(actor.pk) if actor is not None else None,
        },
    )
    return token
