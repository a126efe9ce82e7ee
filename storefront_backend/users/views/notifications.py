# users/views/notifications.py

"""
IN-APP NOTIFICATION INBOX

- GET  /api/auth/notifications/               own notifications (newest first)
- POST /api/auth/notifications/<id>/read/     mark one read
- POST /api/auth/notifications/read-all/      mark all read
"""

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from users.models import UserNotification
from users.serializers import UserNotificationSerializer


class UserNotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = UserNotificationSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_read", "severity"]

    def get_queryset(self):
        return UserNotification.objects.filter(user=self.request.user)

    @extend_schema(request=None, responses={200: UserNotificationSerializer})
    @action(detail=True, methods=["post"], url_path="read")
    def read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read"])
        return Response(self.get_serializer(notification).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: {"type": "object"}})
    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response({"updated": updated}, status=status.HTTP_200_OK)
