# orders/admin.py
"""
=====================================================
PATH: orders/admin.py
=====================================================

Admin rules:
- Orders are read-only here: lifecycle flags only change through the
  service layer (API), never through admin form edits.
- Notification outbox rows can be re-dispatched with an admin action.
"""

from __future__ import annotations

from django.contrib import admin

from orders.models import Order, OrderItem, OrderNotification
from orders.services.notifications import dispatch_notification


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "name", "quantity", "unit_price", "original_unit_price")
    fields = readonly_fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "display_id",
        "user",
        "total_price",
        "is_paid",
        "is_delivered",
        "is_cancelled",
        "refund_status",
        "is_returned",
        "return_status",
        "created_at",
    )
    list_filter = ("is_paid", "is_delivered", "is_cancelled", "refund_status", "is_returned", "return_status")
    search_fields = ("id", "user__email", "tracking_token")
    inlines = [OrderItemInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(OrderNotification)
class OrderNotificationAdmin(admin.ModelAdmin):
    list_display = ("kind", "order", "recipient", "status", "attempts", "created_at", "sent_at")
    list_filter = ("kind", "status")
    search_fields = ("order__id", "recipient__email", "subject")
    readonly_fields = (
        "order",
        "recipient",
        "kind",
        "email_to",
        "subject",
        "text_body",
        "in_app_message",
        "severity",
        "status",
        "attempts",
        "last_error",
        "claimed_at",
        "email_sent_at",
        "in_app_delivered_at",
        "sent_at",
    )
    exclude = ("html_body",)
    actions = ["redispatch"]

    @admin.action(description="Retry delivery")
    def redispatch(self, request, queryset):
        delivered = sum(1 for pk in queryset.values_list("pk", flat=True) if dispatch_notification(pk))
        self.message_user(request, f"{delivered} of {queryset.count()} notification(s) delivered.")

    def has_add_permission(self, request):
        return False
