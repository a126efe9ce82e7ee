# orders/services/order_lifecycle.py

"""
ORDER LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions for Order
entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth

STATE MACHINE:

    created --pay--> paid --deliver--> delivered --request_return--> return_pending
                      |                                                    |
                    cancel                                    mark_return_refunded
                      v                                                    v
               refund_pending --mark_refunded--> refunded           return_refunded

The state is DERIVED from the persisted flags (is_paid, is_delivered,
is_cancelled/refund_status, is_returned/return_status). STATE_FLAGS gives the
exact flag filter of each state; services use it as the compare-and-set
predicate of the transition UPDATE.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone

from orders.services.exceptions import (
    InvalidOrderTransitionError,
    OrderWindowExpiredError,
)


# ============================================================
# STATE + ACTION DEFINITIONS
# ============================================================


class OrderState(models.TextChoices):
    CREATED = "created", "Created"
    PAID = "paid", "Paid"
    DELIVERED = "delivered", "Delivered"
    REFUND_PENDING = "refund_pending", "Cancelled (refund pending)"
    REFUNDED = "refunded", "Cancelled (refunded)"
    RETURN_PENDING = "return_pending", "Return requested"
    RETURN_REFUNDED = "return_refunded", "Returned (refunded)"


class OrderAction(models.TextChoices):
    PAY = "pay", "Confirm payment"
    DELIVER = "deliver", "Mark delivered"
    CANCEL = "cancel", "Cancel"
    MARK_REFUNDED = "mark_refunded", "Mark refund processed"
    REQUEST_RETURN = "request_return", "Request return"
    MARK_RETURN_REFUNDED = "mark_return_refunded", "Mark return refund processed"


TERMINAL_STATES = {
    OrderState.REFUNDED,
    OrderState.RETURN_REFUNDED,
}

ALLOWED_TRANSITIONS = {
    OrderState.CREATED: {
        OrderAction.PAY: OrderState.PAID,
    },
    OrderState.PAID: {
        OrderAction.DELIVER: OrderState.DELIVERED,
        OrderAction.CANCEL: OrderState.REFUND_PENDING,
    },
    OrderState.DELIVERED: {
        OrderAction.REQUEST_RETURN: OrderState.RETURN_PENDING,
    },
    OrderState.REFUND_PENDING: {
        OrderAction.MARK_REFUNDED: OrderState.REFUNDED,
    },
    OrderState.RETURN_PENDING: {
        OrderAction.MARK_RETURN_REFUNDED: OrderState.RETURN_REFUNDED,
    },
}

STATE_FLAGS = {
    OrderState.CREATED: {
        "is_paid": False,
        "is_delivered": False,
        "is_cancelled": False,
        "is_returned": False,
    },
    OrderState.PAID: {
        "is_paid": True,
        "is_delivered": False,
        "is_cancelled": False,
        "is_returned": False,
    },
    OrderState.DELIVERED: {
        "is_delivered": True,
        "is_cancelled": False,
        "is_returned": False,
    },
    OrderState.REFUND_PENDING: {
        "is_cancelled": True,
        "refund_status": "pending",
    },
    OrderState.REFUNDED: {
        "is_cancelled": True,
        "refund_status": "processed",
    },
    OrderState.RETURN_PENDING: {
        "is_returned": True,
        "return_status": "pending",
    },
    OrderState.RETURN_REFUNDED: {
        "is_returned": True,
        "return_status": "refunded",
    },
}

CANCELLED_STATES = {OrderState.REFUND_PENDING, OrderState.REFUNDED}
RETURNED_STATES = {OrderState.RETURN_PENDING, OrderState.RETURN_REFUNDED}
DELIVERED_STATES = {OrderState.DELIVERED} | RETURNED_STATES


# ============================================================
# DOMAIN RULES
# ============================================================


def derive_state(order) -> str:
    """
    Map persisted flags to exactly one lifecycle state.

    Cancellation and return dominate: an order that is cancelled (or returned)
    reports the cancellation (return) branch regardless of is_paid.
    """
    if order.is_cancelled:
        if order.refund_status == "processed":
            return OrderState.REFUNDED
        return OrderState.REFUND_PENDING

    if order.is_returned:
        if order.return_status == "refunded":
            return OrderState.RETURN_REFUNDED
        return OrderState.RETURN_PENDING

    if order.is_delivered:
        return OrderState.DELIVERED

    if order.is_paid:
        return OrderState.PAID

    return OrderState.CREATED


def can_transition(*, from_state: str, action: str) -> bool:
    from_state = OrderState(from_state)
    action = OrderAction(action)

    if from_state in TERMINAL_STATES:
        return False

    return action in ALLOWED_TRANSITIONS.get(from_state, {})


def cancel_window() -> timedelta:
    return timedelta(hours=int(getattr(settings, "ORDER_CANCEL_WINDOW_HOURS", 2)))


def return_window() -> timedelta:
    return timedelta(days=int(getattr(settings, "ORDER_RETURN_WINDOW_DAYS", 7)))


def _rejection_message(action: str, state: str) -> str:
    if action == OrderAction.PAY:
        if state in CANCELLED_STATES:
            return "Cancelled orders cannot be paid"
        return "Order is already paid"

    if action == OrderAction.DELIVER:
        if state in CANCELLED_STATES:
            return "Cancelled orders cannot be delivered"
        if state == OrderState.CREATED:
            return "Order must be paid before it can be delivered"
        return "Order already delivered"

    if action == OrderAction.CANCEL:
        if state in DELIVERED_STATES:
            return "Delivered orders cannot be cancelled"
        if state in CANCELLED_STATES:
            return "Order already cancelled"
        return "Order can only be cancelled after payment is completed"

    if action == OrderAction.MARK_REFUNDED:
        return "Refund is not pending for this order"

    if action == OrderAction.REQUEST_RETURN:
        if state in CANCELLED_STATES:
            return "Cancelled orders cannot be returned"
        if state in RETURNED_STATES:
            return "Return already requested"
        return "Only delivered orders can be returned"

    if action == OrderAction.MARK_RETURN_REFUNDED:
        return "Return is not pending for this order"

    return f"Action '{action}' is not allowed from state '{state}'"


def _ensure_within(*, since: datetime | None, window: timedelta, now: datetime, message: str):
    if since is None:
        return
    if now - since > window:
        raise OrderWindowExpiredError(message)


def validate_transition(*, order, action: str, now: datetime | None = None) -> str:
    """
    Check `action` against the order's current state and time windows.

    Returns the target state. Raises InvalidOrderTransitionError or
    OrderWindowExpiredError; never mutates the order.

    Window checks run before the state table so that an elapsed window is
    reported as such in every state:
    - cancel: created_at + ORDER_CANCEL_WINDOW_HOURS
    - request_return: delivered_at + ORDER_RETURN_WINDOW_DAYS
    """
    now = now or timezone.now()
    state = derive_state(order)
    action = OrderAction(action)

    if action == OrderAction.CANCEL:
        hours = int(cancel_window().total_seconds() // 3600)
        _ensure_within(
            since=order.created_at,
            window=cancel_window(),
            now=now,
            message=f"Order can only be cancelled within {hours} hours of placing it",
        )

    elif action == OrderAction.REQUEST_RETURN and state in DELIVERED_STATES:
        if state == OrderState.DELIVERED and order.delivered_at is None:
            raise InvalidOrderTransitionError("Only delivered orders can be returned")
        _ensure_within(
            since=order.delivered_at,
            window=return_window(),
            now=now,
            message=f"Order can only be returned within {return_window().days} days of delivery",
        )

    if not can_transition(from_state=state, action=action):
        raise InvalidOrderTransitionError(_rejection_message(action, state))

    return ALLOWED_TRANSITIONS[state][action]
