# orders/serializers/analytics.py

from rest_framework import serializers


class DashboardSummarySerializer(serializers.Serializer):
    num_orders = serializers.IntegerField()
    num_products = serializers.IntegerField()
    paid_orders = serializers.IntegerField()
    coupon_uses = serializers.IntegerField()
    total_sales = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_profit = serializers.DecimalField(max_digits=14, decimal_places=2)


class DiscountedProductSerializer(serializers.Serializer):
    name = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class AiDiscountSummarySerializer(serializers.Serializer):
    total_discount = serializers.DecimalField(max_digits=14, decimal_places=2)
    avg_discount = serializers.DecimalField(max_digits=14, decimal_places=2)
    ai_orders_count = serializers.IntegerField()
    top_products = DiscountedProductSerializer(many=True)
    revenue_before = serializers.DecimalField(max_digits=14, decimal_places=2)
    revenue_after = serializers.DecimalField(max_digits=14, decimal_places=2)
