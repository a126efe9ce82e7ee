# orders/serializers/order_commands.py

"""
ORDER COMMAND SERIALIZERS (INPUT ONLY)

Shape validation for request bodies. Business validation (catalog lookups,
pricing, lifecycle rules) lives in orders.services.
"""

from rest_framework import serializers


class ShippingAddressSerializer(serializers.Serializer):
    address = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=120)
    postal_code = serializers.CharField(max_length=32)
    country = serializers.CharField(max_length=120)


class OrderItemInputSerializer(serializers.Serializer):
    product = serializers.UUIDField()
    name = serializers.CharField(max_length=255)
    image = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    qty = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class OrderCreateSerializer(serializers.Serializer):
    """
    Checkout payload.

    Client totals are accepted (must be numeric) but the server recomputes
    every money field.
    """

    shipping_address = ShippingAddressSerializer()
    payment_method = serializers.CharField(max_length=40)
    order_items = OrderItemInputSerializer(many=True, allow_empty=False)

    items_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    tax_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    shipping_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    discount = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=0,
        max_value=100,
    )


class PayerSerializer(serializers.Serializer):
    email_address = serializers.EmailField(required=False, allow_blank=True)


class PaymentResultSerializer(serializers.Serializer):
    """
    Gateway receipt, stored opaquely on the order.
    """

    id = serializers.CharField(max_length=255, required=False, allow_blank=True)
    status = serializers.CharField(max_length=64, required=False, allow_blank=True)
    update_time = serializers.CharField(max_length=64, required=False, allow_blank=True)
    payer = PayerSerializer(required=False)
    email_address = serializers.EmailField(required=False, allow_blank=True)

    def to_receipt(self) -> dict:
        data = self.validated_data
        payer = data.get("payer") or {}
        return {
            "id": data.get("id", ""),
            "status": data.get("status", ""),
            "update_time": data.get("update_time", ""),
            "email_address": data.get("email_address") or payer.get("email_address", ""),
        }


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
