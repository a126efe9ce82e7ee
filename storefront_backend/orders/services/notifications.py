# orders/services/notifications.py

"""
======================================================
PATH: orders/services/notifications.py
======================================================
ORDER NOTIFICATION OUTBOX

Purpose:
- enqueue_order_notification(): called INSIDE the lifecycle transaction;
  renders content and writes an OrderNotification row, then schedules
  dispatch with transaction.on_commit.
- dispatch_notification(): best-effort email + in-app delivery for one row.
- dispatch_pending_notifications(): retry loop used by the management command.

Rules:
- Side effects never run before the transition commits, and never roll it
  back: delivery failures are logged and recorded on the row.
- Email and in-app halves are delivered independently; a half that already
  succeeded is never repeated on retry.
- A row is claimed (status=sending) before delivery; concurrent dispatchers
  skip rows claimed elsewhere until the claim goes stale.
- Template errors degrade the email to text only.
- SMTP calls are bounded by EMAIL_TIMEOUT.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import partial

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.db.models import F, Q
from django.template import TemplateDoesNotExist, TemplateSyntaxError
from django.template.loader import render_to_string
from django.utils import timezone

from orders.models import Order, OrderNotification
from users.models import UserNotification

logger = logging.getLogger(__name__)


# ============================================================
# CONTENT
# ============================================================

# kind -> (subject, text body, in-app message or None, severity)
NOTIFICATION_CONTENT = {
    OrderNotification.KIND_PAYMENT_CONFIRMED: (
        "Order #{order_id} Confirmation - {store}",
        "Thank you for your order of {currency}{total}. Order ID: {order_id}",
        None,
        UserNotification.SEVERITY_INFO,
    ),
    OrderNotification.KIND_ORDER_CANCELLED: (
        "Order #{order_id} Cancelled - {store}",
        "Your order {order_id} has been cancelled. {refund_note}",
        "Order #{order_id} cancelled. {refund_note}",
        UserNotification.SEVERITY_WARNING,
    ),
    OrderNotification.KIND_REFUND_PROCESSED: (
        "Refund Processed for Order #{order_id} - {store}",
        "Refund processed for order {order_id}.",
        "Refund processed for order #{order_id}.",
        UserNotification.SEVERITY_SUCCESS,
    ),
    OrderNotification.KIND_RETURN_REQUESTED: (
        "Return Requested for Order #{order_id} - {store}",
        "Return requested for order {order_id}.",
        "Return requested for order #{order_id}.",
        UserNotification.SEVERITY_INFO,
    ),
    OrderNotification.KIND_RETURN_REFUND_PROCESSED: (
        "Return Refund Processed for Order #{order_id} - {store}",
        "Return refund processed for order {order_id}.",
        "Return refund processed for order #{order_id}.",
        UserNotification.SEVERITY_SUCCESS,
    ),
}


def _store_name() -> str:
    return getattr(settings, "STORE_NAME", "FlitStore")


def tracking_url(order: Order) -> str:
    if not order.tracking_token:
        return ""
    base = (getattr(settings, "FRONTEND_BASE_URL", "") or "").rstrip("/")
    return f"{base}/track/{order.tracking_token}"


def _refund_note(order: Order) -> str:
    if order.is_paid:
        return "Refund will be processed shortly."
    return "No payment was captured."


def _render_html(*, order: Order, kind: str, context: dict) -> str:
    # a broken template degrades the email to text only
    try:
        return render_to_string(f"orders/email/{kind}.html", context)
    except (TemplateDoesNotExist, TemplateSyntaxError):
        logger.exception(
            "Order notification template failed, sending text only",
            extra={"order_id": str(order.pk), "kind": kind},
        )
        return ""


def render_notification(*, order: Order, kind: str) -> dict:
    """
    Build subject / bodies / in-app message for `kind` from the order as it
    stands after the transition.
    """
    subject_tpl, text_tpl, in_app_tpl, severity = NOTIFICATION_CONTENT[kind]

    fmt = {
        "order_id": order.display_id,
        "store": _store_name(),
        "currency": getattr(settings, "STORE_CURRENCY_SYMBOL", "₹"),
        "total": order.total_price,
        "refund_note": _refund_note(order),
    }

    context = {
        "order": order,
        "items": list(order.items.all()),
        "customer_name": order.user.display_name,
        "store_name": fmt["store"],
        "currency": fmt["currency"],
        "refund_note": fmt["refund_note"],
        "tracking_url": tracking_url(order),
    }

    return {
        "subject": subject_tpl.format(**fmt),
        "text_body": text_tpl.format(**fmt),
        "html_body": _render_html(order=order, kind=kind, context=context),
        "in_app_message": in_app_tpl.format(**fmt) if in_app_tpl else "",
        "severity": severity,
    }


# ============================================================
# ENQUEUE (inside the transition transaction)
# ============================================================


def enqueue_order_notification(*, order: Order, kind: str) -> OrderNotification:
    content = render_notification(order=order, kind=kind)

    notification = OrderNotification.objects.create(
        order=order,
        recipient_id=order.user_id,
        kind=kind,
        email_to=order.user.email or "",
        **content,
    )

    transaction.on_commit(
        partial(dispatch_notification, notification.pk),
        robust=True,
    )

    return notification


# ============================================================
# DISPATCH (after commit / retry)
# ============================================================


def _send_email(notification: OrderNotification):
    message = EmailMultiAlternatives(
        subject=notification.subject,
        body=notification.text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[notification.email_to],
    )
    if notification.html_body:
        message.attach_alternative(notification.html_body, "text/html")
    message.send(fail_silently=False)


def _push_in_app(notification: OrderNotification):
    UserNotification.objects.create(
        user_id=notification.recipient_id,
        message=notification.in_app_message,
        severity=notification.severity,
    )


def _claim_timeout() -> timedelta:
    return timedelta(
        seconds=int(getattr(settings, "ORDER_NOTIFICATION_CLAIM_TIMEOUT_SECONDS", 600))
    )


def _claimable(now) -> Q:
    return Q(
        status__in=[OrderNotification.STATUS_PENDING, OrderNotification.STATUS_FAILED]
    ) | Q(
        status=OrderNotification.STATUS_SENDING,
        claimed_at__lt=now - _claim_timeout(),
    )


def _claim(notification_id, *, now) -> OrderNotification | None:
    """
    Take ownership of one row with a conditional UPDATE.

    Returns the claimed row, or None when it is already sent or another
    dispatcher holds a live claim on it.
    """
    claimed = OrderNotification.objects.filter(_claimable(now), pk=notification_id).update(
        status=OrderNotification.STATUS_SENDING,
        claimed_at=now,
        attempts=F("attempts") + 1,
    )
    if claimed != 1:
        return None
    return OrderNotification.objects.get(pk=notification_id)


def _deliver(notification_id) -> str | None:
    """
    Deliver one outbox row and return its resulting status.

    Returns None when the row was not claimed (another dispatcher has it).
    """
    now = timezone.now()
    notification = _claim(notification_id, now=now)
    if notification is None:
        status = (
            OrderNotification.objects.filter(pk=notification_id)
            .values_list("status", flat=True)
            .first()
        )
        if status == OrderNotification.STATUS_SENT:
            return status
        logger.info(
            "Order notification skipped, claimed elsewhere",
            extra={"notification_id": str(notification_id)},
        )
        return None

    log_extra = {
        "notification_id": str(notification.pk),
        "order_id": str(notification.order_id),
        "kind": notification.kind,
    }
    errors = []

    if notification.email_pending:
        try:
            _send_email(notification)
            notification.email_sent_at = now
        except Exception as exc:
            errors.append(f"email: {exc}")
            logger.exception("Order notification email failed", extra=log_extra)

    if notification.in_app_pending:
        try:
            _push_in_app(notification)
            notification.in_app_delivered_at = now
        except Exception as exc:
            errors.append(f"in_app: {exc}")
            logger.exception("Order in-app notification failed", extra=log_extra)

    if errors:
        notification.status = OrderNotification.STATUS_FAILED
        notification.last_error = "; ".join(errors)[:2000]
    else:
        notification.status = OrderNotification.STATUS_SENT
        notification.last_error = ""
        notification.sent_at = now

    notification.save(
        update_fields=[
            "status",
            "last_error",
            "email_sent_at",
            "in_app_delivered_at",
            "sent_at",
        ]
    )

    if not errors:
        logger.info("Order notification delivered", extra=log_extra)

    return notification.status


def dispatch_notification(notification_id) -> bool:
    """
    Deliver one outbox row. Returns True when nothing is left to deliver.

    Never raises for delivery failures; they are logged and stored on the row.
    """
    return _deliver(notification_id) == OrderNotification.STATUS_SENT


def dispatch_pending_notifications(*, max_attempts: int | None = None, limit: int = 100) -> dict:
    """
    Retry undelivered rows (pending, failed, or a stale claim) below the
    attempt ceiling.
    """
    if max_attempts is None:
        max_attempts = int(getattr(settings, "ORDER_NOTIFICATION_MAX_ATTEMPTS", 5))

    queue = list(
        OrderNotification.objects.filter(
            _claimable(timezone.now()),
            attempts__lt=max_attempts,
        )
        .order_by("created_at")
        .values_list("pk", flat=True)[:limit]
    )

    summary = {"sent": 0, "failed": 0, "skipped": 0}
    for notification_id in queue:
        status = _deliver(notification_id)
        if status == OrderNotification.STATUS_SENT:
            summary["sent"] += 1
        elif status is None:
            summary["skipped"] += 1
        else:
            summary["failed"] += 1

    return summary
