# orders/views/orders.py

"""
======================================================
PATH: orders/views/orders.py
======================================================
ORDER API (CUSTOMER + ADMIN)

Routes (mounted at /api/orders/):
- POST /                          create order                (authenticated)
- GET  /                          all orders                  (admin)
- GET  /myorders/                 own orders                  (authenticated)
- GET  /summary/                  dashboard summary           (admin)
- GET  /ai-discounts/             haggle discount analytics   (admin)
- GET  /<id>/                     order detail                (owner or admin)
- PUT  /<id>/pay/                 confirm payment             (owner or admin)
- PUT  /<id>/deliver/             mark delivered              (admin)
- PUT  /<id>/cancel/              cancel + restock            (owner or admin)
- PUT  /<id>/refund/              mark refund processed       (admin)
- PUT  /<id>/return/              request return              (owner or admin)
- PUT  /<id>/return/refund/       mark return refund processed (admin)
- PUT  /<id>/tracking-token/      rotate tracking token       (admin)

Views stay thin: shape validation via serializers, every rule in
orders.services, domain errors mapped to the canonical error envelope.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from orders.models import Order
from orders.serializers import (
    AiDiscountSummarySerializer,
    DashboardSummarySerializer,
    OrderCreateSerializer,
    OrderSerializer,
    PaymentResultSerializer,
    ReasonSerializer,
    TrackingTokenSerializer,
)
from orders.services import analytics, order_service
from orders.services.checkout import create_order
from orders.services.exceptions import OrderError
from orders.views.errors import order_error_response
from permissions.roles import (
    CAP_ORDERS_FULFILL,
    CAP_ORDERS_PLACE,
    CAP_ORDERS_REFUND,
    CAP_ORDERS_TRACKING,
    CAP_ORDERS_VIEW_ALL,
    CAP_REPORTS_VIEW_SALES,
    HasCapability,
)


class OrderViewSet(viewsets.GenericViewSet):
    """
    Order lifecycle endpoints.

    Capability gates are per action; ownership checks (customer acting on
    someone else's order) happen in the service layer.
    """

    queryset = Order.objects.select_related("user").prefetch_related("items")
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]

    lookup_value_regex = "[0-9a-fA-F-]{32,36}"

    filterset_fields = [
        "is_paid",
        "is_delivered",
        "is_cancelled",
        "is_returned",
        "refund_status",
        "return_status",
    ]

    # Capability hooks used by HasCapability
    required_capability = None

    ACTION_CAPABILITIES = {
        "create": CAP_ORDERS_PLACE,
        "list": CAP_ORDERS_VIEW_ALL,
        "summary": CAP_REPORTS_VIEW_SALES,
        "ai_discounts": CAP_REPORTS_VIEW_SALES,
        "deliver": CAP_ORDERS_FULFILL,
        "refund": CAP_ORDERS_REFUND,
        "return_refund": CAP_ORDERS_REFUND,
        "tracking_token": CAP_ORDERS_TRACKING,
    }

    def get_permissions(self):
        capability = self.ACTION_CAPABILITIES.get(self.action)
        if capability:
            self.required_capability = capability
            return [IsAuthenticated(), HasCapability()]
        return [IsAuthenticated()]

    def _respond(self, order, *, http_status=status.HTTP_200_OK):
        return Response(
            OrderSerializer(order, context=self.get_serializer_context()).data,
            status=http_status,
        )

    # --------------------------------------------------
    # CREATE + READS
    # --------------------------------------------------

    @extend_schema(request=OrderCreateSerializer, responses={201: OrderSerializer})
    def create(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = create_order(user=request.user, payload=serializer.validated_data)
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order, http_status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: OrderSerializer(many=True)})
    def list(self, request):
        queryset = self.filter_queryset(order_service.list_orders_for_admin())

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        return Response(self.get_serializer(queryset, many=True).data)

    @extend_schema(responses={200: OrderSerializer})
    def retrieve(self, request, pk=None):
        try:
            order = order_service.get_order_for_actor(order_id=pk, actor=request.user)
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(responses={200: OrderSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="myorders")
    def myorders(self, request):
        orders = order_service.list_orders_for_user(user=request.user)
        return Response(self.get_serializer(orders, many=True).data)

    @extend_schema(responses={200: DashboardSummarySerializer})
    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request):
        return Response(DashboardSummarySerializer(analytics.dashboard_summary()).data)

    @extend_schema(responses={200: AiDiscountSummarySerializer})
    @action(detail=False, methods=["get"], url_path="ai-discounts", url_name="ai-discounts")
    def ai_discounts(self, request):
        return Response(AiDiscountSummarySerializer(analytics.ai_discount_summary()).data)

    # --------------------------------------------------
    # LIFECYCLE TRANSITIONS
    # --------------------------------------------------

    @extend_schema(request=PaymentResultSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="pay")
    def pay(self, request, pk=None):
        receipt = PaymentResultSerializer(data=request.data)
        receipt.is_valid(raise_exception=True)

        try:
            order = order_service.confirm_payment(
                order_id=pk,
                actor=request.user,
                payment_result=receipt.to_receipt(),
            )
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="deliver")
    def deliver(self, request, pk=None):
        try:
            order = order_service.confirm_delivery(order_id=pk, actor=request.user)
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(request=ReasonSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="cancel")
    def cancel(self, request, pk=None):
        command = ReasonSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        try:
            order = order_service.cancel(
                order_id=pk,
                actor=request.user,
                reason=command.validated_data.get("reason", ""),
            )
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="refund")
    def refund(self, request, pk=None):
        try:
            order = order_service.mark_refund_processed(order_id=pk, actor=request.user)
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(request=ReasonSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="return", url_name="return")
    def request_return(self, request, pk=None):
        command = ReasonSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        try:
            order = order_service.request_return(
                order_id=pk,
                actor=request.user,
                reason=command.validated_data.get("reason", ""),
            )
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="return/refund", url_name="return-refund")
    def return_refund(self, request, pk=None):
        try:
            order = order_service.mark_return_refund_processed(order_id=pk, actor=request.user)
        except OrderError as exc:
            return order_error_response(exc)

        return self._respond(order)

    @extend_schema(request=None, responses={200: TrackingTokenSerializer})
    @action(detail=True, methods=["put"], url_path="tracking-token", url_name="tracking-token")
    def tracking_token(self, request, pk=None):
        try:
            token = order_service.regenerate_tracking_token(order_id=pk, actor=request.user)
        except OrderError as exc:
            return order_error_response(exc)

        return Response(TrackingTokenSerializer({"tracking_token": token}).data)
