# users/serializers.py

from rest_framework import serializers

from users.models import UserNotification


class MeSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    role = serializers.CharField()
    is_admin = serializers.BooleanField()
    unread_notifications = serializers.IntegerField()


class UserNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserNotification
        fields = ["id", "message", "severity", "is_read", "created_at"]
        read_only_fields = ["id", "message", "severity", "created_at"]
