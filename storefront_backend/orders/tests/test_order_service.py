# orders/tests/test_order_service.py

from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from orders.models import Order, OrderNotification
from orders.services import order_service
from orders.services.exceptions import (
    ConcurrentOrderUpdateError,
    InvalidOrderTransitionError,
    OrderNotFoundError,
    OrderPermissionError,
    OrderWindowExpiredError,
)
from orders.services.order_lifecycle import OrderState
from orders.tests.helpers import make_admin, make_customer, make_order, make_product, set_fields
from products.models import StockMovement


class OrderServiceTests(TestCase):
    """
    Lifecycle service integration tests.

    GUARANTEES:
    - Each transition changes exactly the documented fields
    - Stock leaves on payment, comes back on cancellation
    - Rejected operations change nothing (order, stock, outbox)
    - Only the owner or an admin can act on an order
    """

    def setUp(self):
        self.customer = make_customer()
        self.other = make_customer(email="other@example.com")
        self.admin = make_admin()

        self.mouse = make_product(sku="SKU-MOUSE", name="Wireless Mouse", unit_price="25.00", stock=10)
        self.pad = make_product(sku="SKU-PAD", name="Mouse Pad", unit_price="5.00", stock=4)

        self.order = make_order(user=self.customer, lines=[(self.mouse, 2), (self.pad, 1)])

    def _stock(self):
        self.mouse.refresh_from_db()
        self.pad.refresh_from_db()
        return self.mouse.count_in_stock, self.pad.count_in_stock

    def _pay(self, actor=None):
        return order_service.confirm_payment(
            order_id=self.order.pk,
            actor=actor or self.customer,
            payment_result={"id": "PAY-1", "status": "COMPLETED"},
        )

    # ======================================================
    # PAYMENT
    # ======================================================

    def test_confirm_payment_marks_paid_and_decrements_stock(self):
        order = self._pay()

        self.assertTrue(order.is_paid)
        self.assertIsNotNone(order.paid_at)
        self.assertEqual(order.payment_result["id"], "PAY-1")
        self.assertTrue(order.tracking_token)
        self.assertEqual(order.state, OrderState.PAID)
        self.assertEqual(self._stock(), (8, 3))

        self.assertEqual(
            StockMovement.objects.filter(order=self.order, reason=StockMovement.Reason.SALE).count(),
            2,
        )

    def test_confirm_payment_enqueues_confirmation(self):
        self._pay()

        kinds = list(OrderNotification.objects.filter(order=self.order).values_list("kind", flat=True))
        self.assertEqual(kinds, [OrderNotification.KIND_PAYMENT_CONFIRMED])

    def test_second_payment_is_rejected_without_touching_stock(self):
        self._pay()

        with self.assertRaises(InvalidOrderTransitionError) as ctx:
            self._pay()

        self.assertEqual(str(ctx.exception), "Order is already paid")
        self.assertEqual(self._stock(), (8, 3))

    def test_payment_by_stranger_is_forbidden(self):
        with self.assertRaises(OrderPermissionError):
            self._pay(actor=self.other)

        self.order.refresh_from_db()
        self.assertFalse(self.order.is_paid)
        self.assertEqual(self._stock(), (10, 4))

    def test_admin_can_confirm_payment_for_customer(self):
        order = self._pay(actor=self.admin)
        self.assertTrue(order.is_paid)

    def test_payment_may_oversell(self):
        self.pad.count_in_stock = 0
        self.pad.save(update_fields=["count_in_stock"])

        self._pay()

        self.assertEqual(self._stock(), (8, -1))

    def test_unknown_order_is_not_found(self):
        with self.assertRaises(OrderNotFoundError):
            order_service.confirm_payment(
                order_id="00000000-0000-0000-0000-000000000000",
                actor=self.customer,
            )

    def test_malformed_order_id_is_not_found(self):
        with self.assertRaises(OrderNotFoundError):
            order_service.confirm_delivery(order_id="not-a-uuid", actor=self.admin)

    # ======================================================
    # DELIVERY
    # ======================================================

    def test_deliver_paid_order(self):
        self._pay()

        order = order_service.confirm_delivery(order_id=self.order.pk, actor=self.admin)

        self.assertTrue(order.is_delivered)
        self.assertIsNotNone(order.delivered_at)
        self.assertEqual(order.state, OrderState.DELIVERED)

    def test_deliver_unpaid_order_is_rejected(self):
        with self.assertRaises(InvalidOrderTransitionError):
            order_service.confirm_delivery(order_id=self.order.pk, actor=self.admin)

        self.order.refresh_from_db()
        self.assertFalse(self.order.is_delivered)

    def test_cancelled_order_can_never_be_delivered(self):
        self._pay()
        order_service.cancel(order_id=self.order.pk, actor=self.customer)

        with self.assertRaises(InvalidOrderTransitionError):
            order_service.confirm_delivery(order_id=self.order.pk, actor=self.admin)

        self.order.refresh_from_db()
        self.assertFalse(self.order.is_delivered)

    # ======================================================
    # CANCELLATION + REFUND
    # ======================================================

    def test_cancel_restores_stock_and_sets_refund_pending(self):
        self._pay()

        order = order_service.cancel(order_id=self.order.pk, actor=self.customer)

        self.assertTrue(order.is_cancelled)
        self.assertEqual(order.refund_status, Order.REFUND_PENDING)
        self.assertEqual(order.cancel_reason, order_service.DEFAULT_CANCEL_REASON)
        self.assertEqual(self._stock(), (10, 4))
        self.assertEqual(
            StockMovement.objects.filter(
                order=self.order, reason=StockMovement.Reason.CANCELLATION
            ).count(),
            2,
        )

    def test_cancel_keeps_given_reason(self):
        self._pay()
        order = order_service.cancel(order_id=self.order.pk, actor=self.customer, reason="  Wrong size ")
        self.assertEqual(order.cancel_reason, "Wrong size")

    def test_cancel_twice_does_not_restock_twice(self):
        self._pay()
        order_service.cancel(order_id=self.order.pk, actor=self.customer)

        with self.assertRaises(InvalidOrderTransitionError) as ctx:
            order_service.cancel(order_id=self.order.pk, actor=self.customer)

        self.assertEqual(str(ctx.exception), "Order already cancelled")
        self.assertEqual(self._stock(), (10, 4))

    def test_cancel_after_window_changes_nothing(self):
        self._pay()
        set_fields(self.order, created_at=timezone.now() - timedelta(hours=3))

        with self.assertRaises(OrderWindowExpiredError):
            order_service.cancel(order_id=self.order.pk, actor=self.customer)

        self.order.refresh_from_db()
        self.assertFalse(self.order.is_cancelled)
        self.assertEqual(self._stock(), (8, 3))

    def test_cancel_by_stranger_is_forbidden(self):
        self._pay()

        with self.assertRaises(OrderPermissionError) as ctx:
            order_service.cancel(order_id=self.order.pk, actor=self.other)

        self.assertEqual(str(ctx.exception), "Not authorized to cancel this order")

    def test_mark_refund_processed(self):
        self._pay()
        order_service.cancel(order_id=self.order.pk, actor=self.customer)

        order = order_service.mark_refund_processed(order_id=self.order.pk, actor=self.admin)

        self.assertEqual(order.refund_status, Order.REFUND_PROCESSED)
        self.assertIsNotNone(order.refund_at)
        self.assertEqual(order.state, OrderState.REFUNDED)

    def test_mark_refund_processed_twice_is_rejected(self):
        self._pay()
        order_service.cancel(order_id=self.order.pk, actor=self.customer)
        first = order_service.mark_refund_processed(order_id=self.order.pk, actor=self.admin)

        with self.assertRaises(InvalidOrderTransitionError) as ctx:
            order_service.mark_refund_processed(order_id=self.order.pk, actor=self.admin)

        self.assertEqual(str(ctx.exception), "Refund is not pending for this order")
        self.order.refresh_from_db()
        self.assertEqual(self.order.refund_at, first.refund_at)
        self.assertEqual(
            OrderNotification.objects.filter(kind=OrderNotification.KIND_REFUND_PROCESSED).count(),
            1,
        )

    def test_refund_without_cancellation_is_rejected(self):
        self._pay()

        with self.assertRaises(InvalidOrderTransitionError):
            order_service.mark_refund_processed(order_id=self.order.pk, actor=self.admin)

    # ======================================================
    # RETURNS
    # ======================================================

    def _deliver(self):
        self._pay()
        return order_service.confirm_delivery(order_id=self.order.pk, actor=self.admin)

    def test_request_return_within_window(self):
        self._deliver()

        order = order_service.request_return(order_id=self.order.pk, actor=self.customer)

        self.assertTrue(order.is_returned)
        self.assertEqual(order.return_status, Order.RETURN_PENDING)
        self.assertEqual(order.return_reason, order_service.DEFAULT_RETURN_REASON)
        # Returns do not restock
        self.assertEqual(self._stock(), (8, 3))

    def test_request_return_after_window(self):
        self._deliver()
        set_fields(self.order, delivered_at=timezone.now() - timedelta(days=8))

        with self.assertRaises(OrderWindowExpiredError):
            order_service.request_return(order_id=self.order.pk, actor=self.customer)

        self.order.refresh_from_db()
        self.assertFalse(self.order.is_returned)

    def test_return_without_delivery_timestamp_is_rejected(self):
        self._deliver()
        set_fields(self.order, delivered_at=None)

        with self.assertRaises(InvalidOrderTransitionError) as ctx:
            order_service.request_return(order_id=self.order.pk, actor=self.customer)

        self.assertEqual(str(ctx.exception), "Only delivered orders can be returned")
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_returned)
        self.assertEqual(self.order.return_status, Order.RETURN_NONE)

    def test_return_refund_flow(self):
        self._deliver()
        order_service.request_return(order_id=self.order.pk, actor=self.customer, reason="Broken")

        order = order_service.mark_return_refund_processed(order_id=self.order.pk, actor=self.admin)

        self.assertEqual(order.return_status, Order.RETURN_REFUNDED)
        self.assertIsNotNone(order.return_refund_at)
        self.assertEqual(order.state, OrderState.RETURN_REFUNDED)

    def test_return_refund_without_request_is_rejected(self):
        self._deliver()

        with self.assertRaises(InvalidOrderTransitionError) as ctx:
            order_service.mark_return_refund_processed(order_id=self.order.pk, actor=self.admin)

        self.assertEqual(str(ctx.exception), "Return is not pending for this order")

    # ======================================================
    # CONCURRENCY
    # ======================================================

    def test_lost_race_rolls_back_everything(self):
        self._pay()

        real_update = Order.objects.filter

        def racing_filter(*args, **kwargs):
            # Another writer cancels between the guard and the conditional UPDATE
            if "is_paid" in kwargs and "is_delivered" in kwargs and len(kwargs) > 2:
                Order.objects.filter(pk=self.order.pk).update(
                    is_cancelled=True, refund_status=Order.REFUND_PENDING
                )
            return real_update(*args, **kwargs)

        with mock.patch.object(Order.objects, "filter", side_effect=racing_filter):
            with self.assertRaises(ConcurrentOrderUpdateError):
                order_service.confirm_delivery(order_id=self.order.pk, actor=self.admin)

        self.order.refresh_from_db()
        self.assertFalse(self.order.is_delivered)

    # ======================================================
    # READS + TOKENS
    # ======================================================

    def test_owner_and_admin_can_read_stranger_cannot(self):
        self.assertEqual(
            order_service.get_order_for_actor(order_id=self.order.pk, actor=self.customer).pk,
            self.order.pk,
        )
        self.assertEqual(
            order_service.get_order_for_actor(order_id=self.order.pk, actor=self.admin).pk,
            self.order.pk,
        )
        with self.assertRaises(OrderPermissionError):
            order_service.get_order_for_actor(order_id=self.order.pk, actor=self.other)

    def test_admin_list_backfills_tracking_tokens(self):
        self.assertIsNone(self.order.tracking_token)

        list(order_service.list_orders_for_admin())

        self.order.refresh_from_db()
        self.assertTrue(self.order.tracking_token)

    def test_regenerate_tracking_token(self):
        self._pay()
        self.order.refresh_from_db()
        old = self.order.tracking_token

        new = order_service.regenerate_tracking_token(order_id=self.order.pk, actor=self.admin)

        self.order.refresh_from_db()
        self.assertNotEqual(old, new)
        self.assertEqual(self.order.tracking_token, new)
