# orders/serializers/tracking.py

from rest_framework import serializers


class TrackingStatusSerializer(serializers.Serializer):
    """
    Public tracking projection (no identity, address, items or money).
    """

    tracking_id = serializers.CharField()
    state = serializers.CharField()
    created_at = serializers.DateTimeField()
    is_paid = serializers.BooleanField()
    paid_at = serializers.DateTimeField(allow_null=True)
    is_delivered = serializers.BooleanField()
    delivered_at = serializers.DateTimeField(allow_null=True)
    is_cancelled = serializers.BooleanField()
    cancelled_at = serializers.DateTimeField(allow_null=True)
    is_returned = serializers.BooleanField()
    returned_at = serializers.DateTimeField(allow_null=True)
    refund_status = serializers.CharField()
    return_status = serializers.CharField()


class TrackingTokenSerializer(serializers.Serializer):
    tracking_token = serializers.CharField()
