# products/tests/test_inventory.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from orders.tests.helpers import make_customer, make_order
from products.models import Product, StockMovement
from products.services.inventory import decrement_stock, increment_stock


class InventoryServiceTests(TestCase):
    """
    Inventory collaborator tests.

    GUARANTEES:
    - Counters move by exactly the requested quantity
    - Every change writes one ledger row
    - Decrement then increment nets to the original stock
    """

    def setUp(self):
        self.product = Product.objects.create(
            sku="SKU-001",
            name="Wireless Mouse",
            unit_price=Decimal("25.00"),
            count_in_stock=5,
        )
        self.order = make_order(user=make_customer(), lines=[(self.product, 3)])

    def test_decrement_then_increment_round_trips(self):
        self.assertEqual(decrement_stock(product_id=self.product.pk, quantity=3, order=self.order), 2)
        self.assertEqual(increment_stock(product_id=self.product.pk, quantity=3, order=self.order), 5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.count_in_stock, 5)

        reasons = list(
            StockMovement.objects.filter(product=self.product)
            .values_list("movement_type", flat=True)
        )
        self.assertCountEqual(reasons, [StockMovement.MovementType.OUT, StockMovement.MovementType.IN])

    def test_decrement_below_zero_is_recorded_not_refused(self):
        remaining = decrement_stock(product_id=self.product.pk, quantity=7, order=self.order)

        self.assertEqual(remaining, -2)

    def test_missing_product_is_skipped(self):
        self.assertIsNone(
            increment_stock(product_id="00000000-0000-0000-0000-000000000000", quantity=1, order=self.order)
        )
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(ValidationError):
            decrement_stock(product_id=self.product.pk, quantity=0)

        with self.assertRaises(ValidationError):
            increment_stock(product_id=self.product.pk, quantity=True)

        self.product.refresh_from_db()
        self.assertEqual(self.product.count_in_stock, 5)


class StockMovementLedgerTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(
            sku="SKU-002",
            name="Mouse Pad",
            unit_price=Decimal("5.00"),
            count_in_stock=1,
        )

    def test_manual_adjustment_needs_no_order(self):
        movement = StockMovement.objects.create(
            product=self.product,
            movement_type=StockMovement.MovementType.IN,
            reason=StockMovement.Reason.ADJUSTMENT,
            quantity=2,
        )
        self.assertIsNotNone(movement.pk)

    def test_sale_movement_requires_order(self):
        with self.assertRaises(ValidationError):
            StockMovement.objects.create(
                product=self.product,
                movement_type=StockMovement.MovementType.OUT,
                reason=StockMovement.Reason.SALE,
                quantity=1,
            )

    def test_movements_are_immutable(self):
        movement = StockMovement.objects.create(
            product=self.product,
            movement_type=StockMovement.MovementType.IN,
            reason=StockMovement.Reason.ADJUSTMENT,
            quantity=2,
        )
        movement.quantity = 5

        with self.assertRaises(ValidationError):
            movement.save()
