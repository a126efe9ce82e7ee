# orders/tests/test_order_api.py

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.core import mail
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from orders.models import Order
from orders.tests.helpers import make_admin, make_customer, make_order, make_product, set_fields


class OrderAPITests(TestCase):
    """
    Order endpoints end-to-end.

    GUARANTEES:
    - Capability gates per action (admin-only actions refuse customers)
    - Domain errors use the canonical error envelope
    - Tracking token is only visible to admins
    """

    def setUp(self):
        self.client = APIClient()

        self.customer = make_customer()
        self.other = make_customer(email="other@example.com")
        self.admin = make_admin()

        self.product = make_product(unit_price="40.00", stock=5)
        self.order = make_order(user=self.customer, lines=[(self.product, 2)])

    def _url(self, name, order=None):
        if order is None:
            return reverse(f"orders-{name}")
        return reverse(f"orders-{name}", args=[order.pk])

    def _pay(self):
        self.client.force_authenticate(self.customer)
        return self.client.put(
            self._url("pay", self.order),
            {"id": "PAYPAL-123", "status": "COMPLETED", "update_time": "2026-01-01T10:00:00Z",
             "payer": {"email_address": "buyer@example.com"}},
            format="json",
        )

    def assertError(self, response, http_status, code=None, message=None):
        self.assertEqual(response.status_code, http_status, response.content)
        self.assertIn("error", response.data)
        if code is not None:
            self.assertEqual(response.data["error"]["code"], code)
        if message is not None:
            self.assertEqual(response.data["error"]["message"], message)

    # ======================================================
    # AUTHENTICATION
    # ======================================================

    def test_unauthenticated_requests_are_rejected(self):
        response = self.client.get(self._url("detail", self.order))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.client.put(self._url("pay", self.order), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    # ======================================================
    # READS
    # ======================================================

    def test_owner_gets_order_without_tracking_token(self):
        set_fields(self.order, tracking_token="a" * 40)
        self.client.force_authenticate(self.customer)

        response = self.client.get(self._url("detail", self.order))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], str(self.order.pk))
        self.assertEqual(response.data["state"], "created")
        self.assertNotIn("tracking_token", response.data)
        self.assertEqual(len(response.data["items"]), 1)

    def test_admin_gets_order_with_tracking_token(self):
        set_fields(self.order, tracking_token="a" * 40)
        self.client.force_authenticate(self.admin)

        response = self.client.get(self._url("detail", self.order))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["tracking_token"], "a" * 40)

    def test_stranger_cannot_read_order(self):
        self.client.force_authenticate(self.other)

        response = self.client.get(self._url("detail", self.order))

        self.assertError(response, status.HTTP_403_FORBIDDEN, code="ORDER_FORBIDDEN")

    def test_unknown_order_is_404(self):
        self.client.force_authenticate(self.admin)

        response = self.client.get(
            reverse("orders-detail", args=["00000000-0000-0000-0000-000000000000"])
        )

        self.assertError(response, status.HTTP_404_NOT_FOUND, message="Order not found")

    def test_myorders_lists_only_own_orders(self):
        make_order(user=self.other, lines=[(self.product, 1)])
        self.client.force_authenticate(self.customer)

        response = self.client.get(self._url("myorders"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o["id"] for o in response.data], [str(self.order.pk)])

    def test_admin_list_is_admin_only_and_filterable(self):
        make_order(user=self.other, lines=[(self.product, 1)], is_paid=True, paid_at=timezone.now())

        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(self._url("list")).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(self._url("list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
        self.assertTrue(all(o["tracking_token"] for o in response.data["results"]))

        response = self.client.get(self._url("list"), {"is_paid": "true"})
        self.assertEqual(response.data["count"], 1)

    # ======================================================
    # PAYMENT
    # ======================================================

    def test_pay_stores_receipt_and_sends_confirmation(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self._pay()

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertTrue(response.data["is_paid"])
        self.assertEqual(response.data["payment_result"]["email_address"], "buyer@example.com")

        self.product.refresh_from_db()
        self.assertEqual(self.product.count_in_stock, 3)

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("Confirmation", mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, [self.customer.email])

    def test_pay_twice_is_rejected(self):
        self._pay()

        response = self._pay()

        self.assertError(
            response,
            status.HTTP_400_BAD_REQUEST,
            code="INVALID_ORDER_STATE",
            message="Order is already paid",
        )
        self.product.refresh_from_db()
        self.assertEqual(self.product.count_in_stock, 3)

    def test_stranger_cannot_pay(self):
        self.client.force_authenticate(self.other)

        response = self.client.put(self._url("pay", self.order), {}, format="json")

        self.assertError(response, status.HTTP_403_FORBIDDEN)

    # ======================================================
    # DELIVERY
    # ======================================================

    def test_deliver_requires_admin(self):
        self._pay()

        self.client.force_authenticate(self.customer)
        response = self.client.put(self._url("deliver", self.order), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.put(self._url("deliver", self.order), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_delivered"])

    def test_deliver_unpaid_is_rejected(self):
        self.client.force_authenticate(self.admin)

        response = self.client.put(self._url("deliver", self.order), format="json")

        self.assertError(response, status.HTTP_400_BAD_REQUEST, code="INVALID_ORDER_STATE")

    # ======================================================
    # CANCEL + REFUND
    # ======================================================

    def test_cancel_then_refund(self):
        self._pay()

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(
                self._url("cancel", self.order), {"reason": "Changed my mind"}, format="json"
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertTrue(response.data["is_cancelled"])
        self.assertEqual(response.data["refund_status"], "pending")
        self.assertEqual(response.data["cancel_reason"], "Changed my mind")
        self.assertEqual(self.customer.notifications.count(), 1)

        self.client.force_authenticate(self.admin)
        response = self.client.put(self._url("refund", self.order), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["refund_status"], "processed")
        self.assertEqual(response.data["state"], "refunded")

    def test_cancel_after_window_is_rejected(self):
        self._pay()
        set_fields(self.order, created_at=timezone.now() - timedelta(hours=5))

        response = self.client.put(self._url("cancel", self.order), {}, format="json")

        self.assertError(
            response,
            status.HTTP_400_BAD_REQUEST,
            code="ORDER_WINDOW_EXPIRED",
            message="Order can only be cancelled within 2 hours of placing it",
        )

    def test_second_refund_is_rejected(self):
        self._pay()
        self.client.put(self._url("cancel", self.order), {}, format="json")

        self.client.force_authenticate(self.admin)
        first = self.client.put(self._url("refund", self.order), format="json")
        second = self.client.put(self._url("refund", self.order), format="json")

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertError(
            second,
            status.HTTP_400_BAD_REQUEST,
            code="INVALID_ORDER_STATE",
            message="Refund is not pending for this order",
        )

    def test_customer_cannot_mark_refund(self):
        self._pay()
        self.client.put(self._url("cancel", self.order), {}, format="json")

        response = self.client.put(self._url("refund", self.order), format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    # ======================================================
    # RETURNS
    # ======================================================

    def test_return_and_return_refund(self):
        self._pay()
        self.client.force_authenticate(self.admin)
        self.client.put(self._url("deliver", self.order), format="json")

        self.client.force_authenticate(self.customer)
        response = self.client.put(self._url("return", self.order), {"reason": "Too small"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual(response.data["return_status"], "pending")
        self.assertEqual(response.data["return_reason"], "Too small")

        response = self.client.put(self._url("return-refund", self.order), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.put(self._url("return-refund", self.order), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["state"], "return_refunded")

    def test_return_of_undelivered_order_is_rejected(self):
        self._pay()

        response = self.client.put(self._url("return", self.order), {}, format="json")

        self.assertError(
            response,
            status.HTTP_400_BAD_REQUEST,
            message="Only delivered orders can be returned",
        )

    # ======================================================
    # TRACKING
    # ======================================================

    def test_public_tracking_lookup(self):
        self._pay()
        self.order.refresh_from_db()
        self.client.force_authenticate(None)

        response = self.client.get(reverse("order-tracking", args=[self.order.tracking_token]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["tracking_id"], self.order.pk.hex[:8].upper())
        self.assertTrue(response.data["is_paid"])
        self.assertEqual(response.data["state"], "paid")
        for private in ("id", "user", "items", "total_price", "shipping"):
            self.assertNotIn(private, response.data)

    def test_public_tracking_ignores_bad_credentials(self):
        set_fields(self.order, tracking_token="b" * 40)
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")

        response = self.client.get(reverse("order-tracking", args=["b" * 40]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unknown_tracking_token_is_404(self):
        response = self.client.get(reverse("order-tracking", args=["nope"]))

        self.assertError(
            response,
            status.HTTP_404_NOT_FOUND,
            code="TRACKING_NOT_FOUND",
            message="Tracking link is invalid",
        )

    def test_admin_rotates_tracking_token(self):
        set_fields(self.order, tracking_token="c" * 40)

        self.client.force_authenticate(self.customer)
        response = self.client.put(self._url("tracking-token", self.order), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.put(self._url("tracking-token", self.order), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        new_token = response.data["tracking_token"]
        self.assertNotEqual(new_token, "c" * 40)
        self.assertEqual(len(new_token), 40)

        self.client.force_authenticate(None)
        old = self.client.get(reverse("order-tracking", args=["c" * 40]))
        self.assertEqual(old.status_code, status.HTTP_404_NOT_FOUND)


class OrderCreateAPITests(TestCase):
    """
    POST /api/orders/ (checkout).
    """

    def setUp(self):
        self.client = APIClient()
        self.customer = make_customer()
        self.client.force_authenticate(self.customer)

        self.keyboard = make_product(sku="SKU-KB", name="Keyboard", unit_price="60.00", stock=3)
        self.cable = make_product(sku="SKU-CB", name="USB Cable", unit_price="8.00", stock=20)

    def _payload(self, **overrides):
        payload = {
            "shipping_address": {
                "address": "12 MG Road",
                "city": "Pune",
                "postal_code": "411001",
                "country": "India",
            },
            "payment_method": "PayPal",
            "order_items": [
                {"product": str(self.keyboard.pk), "name": "Keyboard", "image": "/img/kb.png", "qty": 1, "price": "50.00"},
                {"product": str(self.cable.pk), "name": "USB Cable", "image": "/img/cb.png", "qty": 2, "price": "8.00"},
            ],
            "items_price": "66.00",
            "tax_price": "9.90",
            "shipping_price": "10.00",
            "total_price": "85.90",
        }
        payload.update(overrides)
        return payload

    def test_create_order_computes_totals_server_side(self):
        response = self.client.post(reverse("orders-list"), self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)

        order = Order.objects.get(pk=response.data["id"])
        self.assertEqual(order.items_price, Decimal("66.00"))
        self.assertEqual(order.tax_price, Decimal("9.90"))
        self.assertEqual(order.shipping_price, Decimal("10.00"))
        self.assertEqual(order.total_price, Decimal("85.90"))
        self.assertEqual(order.ai_discount_total, Decimal("10.00"))
        self.assertEqual(order.ai_discount_item_count, 1)
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(len(order.tracking_token), 40)
        self.assertFalse(order.is_paid)

        # Customers never see the raw token in responses
        self.assertNotIn("tracking_token", response.data)

        # Stock untouched until payment
        self.keyboard.refresh_from_db()
        self.assertEqual(self.keyboard.count_in_stock, 3)

    def test_client_totals_are_not_trusted(self):
        response = self.client.post(
            reverse("orders-list"), self._payload(total_price="1.00"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data["total_price"]), Decimal("85.90"))

    def test_free_shipping_above_threshold(self):
        payload = self._payload(
            order_items=[
                {"product": str(self.keyboard.pk), "name": "Keyboard", "qty": 2, "price": "60.00"},
            ]
        )

        response = self.client.post(reverse("orders-list"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data["shipping_price"]), Decimal("0.00"))
        self.assertEqual(Decimal(response.data["total_price"]), Decimal("138.00"))

    def test_empty_items_are_rejected(self):
        response = self.client.post(reverse("orders-list"), self._payload(order_items=[]), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_zero_quantity_is_rejected(self):
        payload = self._payload(
            order_items=[{"product": str(self.cable.pk), "name": "USB Cable", "qty": 0, "price": "8.00"}]
        )
        response = self.client.post(reverse("orders-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_address_part_is_rejected(self):
        payload = self._payload(shipping_address={"address": "12 MG Road", "city": "Pune"})
        response = self.client.post(reverse("orders-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_numeric_prices_are_rejected(self):
        response = self.client.post(
            reverse("orders-list"), self._payload(items_price="lots"), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_product_is_rejected(self):
        self.cable.is_active = False
        self.cable.save(update_fields=["is_active"])

        response = self.client.post(reverse("orders-list"), self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "ORDER_VALIDATION_FAILED")

    def test_price_above_catalog_is_rejected(self):
        payload = self._payload(
            order_items=[{"product": str(self.cable.pk), "name": "USB Cable", "qty": 1, "price": "9.00"}]
        )
        response = self.client.post(reverse("orders-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)
