# users/models/notification.py

import uuid

from django.conf import settings
from django.db import models


class UserNotification(models.Model):
    """
    In-app notification inbox entry.

    Written best-effort by the order notification dispatcher; the storefront
    header polls /api/auth/notifications/ and marks entries read.
    """

    SEVERITY_INFO = "info"
    SEVERITY_SUCCESS = "success"
    SEVERITY_WARNING = "warning"
    SEVERITY_ERROR = "error"

    SEVERITY_CHOICES = [
        (SEVERITY_INFO, "Info"),
        (SEVERITY_SUCCESS, "Success"),
        (SEVERITY_WARNING, "Warning"),
        (SEVERITY_ERROR, "Error"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )

    message = models.CharField(max_length=500)
    severity = models.CharField(
        max_length=16, choices=SEVERITY_CHOICES, default=SEVERITY_INFO
    )
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="users_notif_user_read_idx"),
        ]

    def __str__(self):
        return f"[{self.severity}] {self.message[:40]}"
