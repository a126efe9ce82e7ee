# orders/models/order_notification.py

"""
ORDER NOTIFICATION OUTBOX

One row per customer-facing side effect of a lifecycle transition.

- Written in the SAME transaction as the transition (so it exists iff the
  transition committed).
- Dispatched after commit; email and in-app delivery are tracked separately
  so a retry never duplicates the half that already went out.
- A dispatcher claims the row (status=sending) before sending, so two
  dispatchers never deliver the same row twice.
- Failures stay on the row (status=failed, attempts, last_error) for
  `manage.py dispatch_order_notifications` to retry.
"""

import uuid

from django.conf import settings
from django.db import models


class OrderNotification(models.Model):
    KIND_PAYMENT_CONFIRMED = "payment_confirmed"
    KIND_ORDER_CANCELLED = "order_cancelled"
    KIND_REFUND_PROCESSED = "refund_processed"
    KIND_RETURN_REQUESTED = "return_requested"
    KIND_RETURN_REFUND_PROCESSED = "return_refund_processed"

    KIND_CHOICES = [
        (KIND_PAYMENT_CONFIRMED, "Payment confirmed"),
        (KIND_ORDER_CANCELLED, "Order cancelled"),
        (KIND_REFUND_PROCESSED, "Refund processed"),
        (KIND_RETURN_REQUESTED, "Return requested"),
        (KIND_RETURN_REFUND_PROCESSED, "Return refund processed"),
    ]

    STATUS_PENDING = "pending"
    STATUS_SENDING = "sending"
    STATUS_SENT = "sent"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_SENDING, "Sending"),
        (STATUS_SENT, "Sent"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="order_notifications",
    )

    kind = models.CharField(max_length=32, choices=KIND_CHOICES)

    email_to = models.EmailField(blank=True, default="")
    subject = models.CharField(max_length=255)
    text_body = models.TextField()
    html_body = models.TextField(blank=True, default="")

    in_app_message = models.CharField(max_length=500, blank=True, default="")
    severity = models.CharField(max_length=16, default="info")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    # set when a dispatcher claims the row; a stale claim may be taken over
    claimed_at = models.DateTimeField(null=True, blank=True)

    email_sent_at = models.DateTimeField(null=True, blank=True)
    in_app_delivered_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="orders_notif_status_idx"),
        ]

    @property
    def email_pending(self) -> bool:
        return bool(self.email_to) and self.email_sent_at is None

    @property
    def in_app_pending(self) -> bool:
        return bool(self.in_app_message) and self.in_app_delivered_at is None

    def __str__(self):
        return f"{self.kind} -> {self.recipient_id} ({self.status})"
