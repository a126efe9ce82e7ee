# orders/apps.py

"""
ORDERS APP CONFIG

Order lifecycle: checkout snapshot, payment, delivery, cancellation/refund,
return/return refund, public tracking, notification outbox.
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"
