# orders/views/tracking.py

"""
PUBLIC ORDER TRACKING

GET /api/orders/track/<token>/  (no authentication, throttled)
"""

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from orders.serializers import TrackingStatusSerializer
from orders.services.exceptions import OrderError
from orders.services.tracking import get_tracking_status
from orders.views.errors import order_error_response


class PublicTrackingThrottle(AnonRateThrottle):
    scope = "public_tracking"


class TrackingStatusView(APIView):
    """
    Status lookup by opaque tracking token.

    No auth classes: a stale Authorization header must not turn a public
    link into a 401.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [PublicTrackingThrottle]
    serializer_class = TrackingStatusSerializer

    @extend_schema(responses={200: TrackingStatusSerializer})
    def get(self, request, token=None):
        try:
            projection = get_tracking_status(token)
        except OrderError as exc:
            return order_error_response(exc)

        return Response(TrackingStatusSerializer(projection).data)
