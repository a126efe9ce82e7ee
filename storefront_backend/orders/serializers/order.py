# orders/serializers/order.py

from rest_framework import serializers

from orders.models import Order, OrderItem
from orders.services.order_service import is_order_admin


class OrderItemSerializer(serializers.ModelSerializer):
    """
    Order line snapshot (read-only).
    """

    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "name",
            "image",
            "quantity",
            "unit_price",
            "original_unit_price",
            "line_total",
        ]
        read_only_fields = fields


class OrderUserSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    email = serializers.EmailField(read_only=True)
    name = serializers.CharField(source="display_name", read_only=True)


class OrderSerializer(serializers.ModelSerializer):
    """
    Full order view for the owner and admins.

    tracking_token is only exposed to admins; customers receive their link by
    email.
    """

    display_id = serializers.CharField(read_only=True)
    state = serializers.CharField(read_only=True)
    user = OrderUserSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    shipping = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "display_id",
            "state",
            "user",
            "items",
            "shipping",
            "payment_method",
            "payment_result",
            "items_price",
            "tax_price",
            "shipping_price",
            "total_price",
            "discount_percent",
            "ai_discount_total",
            "ai_discount_item_count",
            "is_paid",
            "paid_at",
            "is_delivered",
            "delivered_at",
            "is_cancelled",
            "cancelled_at",
            "cancel_reason",
            "refund_status",
            "refund_at",
            "is_returned",
            "returned_at",
            "return_reason",
            "return_status",
            "return_refund_at",
            "tracking_token",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_shipping(self, obj):
        return {
            "address": obj.shipping_address,
            "city": obj.shipping_city,
            "postal_code": obj.shipping_postal_code,
            "country": obj.shipping_country,
        }

    def to_representation(self, instance):
        data = super().to_representation(instance)

        request = self.context.get("request")
        actor = getattr(request, "user", None)
        if not is_order_admin(actor):
            data.pop("tracking_token", None)

        return data
