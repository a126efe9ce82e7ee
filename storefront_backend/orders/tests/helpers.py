# orders/tests/helpers.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model

from orders.models import Order, OrderItem
from products.models import Product

User = get_user_model()


def make_customer(email="customer@example.com", **extra):
    return User.objects.create_user(
        email=email,
        password="pass",
        role=User.ROLE_CUSTOMER,
        first_name=extra.pop("first_name", "Asha"),
        **extra,
    )


def make_admin(email="admin@example.com"):
    return User.objects.create_user(
        email=email,
        password="pass",
        role=User.ROLE_ADMIN,
    )


def make_product(*, sku="SKU-001", name="Wireless Mouse", unit_price="25.00", stock=10):
    return Product.objects.create(
        sku=sku,
        name=name,
        unit_price=Decimal(unit_price),
        count_in_stock=stock,
    )


def make_order(*, user, lines, **fields) -> Order:
    """
    Persist an order directly (bypassing checkout).

    lines: [(product, qty)] or [(product, qty, charged_unit_price)]
    """
    items_price = Decimal("0.00")
    for line in lines:
        product, qty = line[0], line[1]
        price = Decimal(line[2]) if len(line) > 2 else product.unit_price
        items_price += price * qty

    fields.setdefault("items_price", items_price)
    fields.setdefault("total_price", items_price)

    order = Order.objects.create(
        user=user,
        shipping_address="12 MG Road",
        shipping_city="Pune",
        shipping_postal_code="411001",
        shipping_country="India",
        payment_method="PayPal",
        **fields,
    )

    for position, line in enumerate(lines):
        product, qty = line[0], line[1]
        price = Decimal(line[2]) if len(line) > 2 else product.unit_price
        OrderItem.objects.create(
            order=order,
            product=product,
            position=position,
            name=product.name,
            quantity=qty,
            unit_price=price,
            original_unit_price=product.unit_price,
        )

    return order


def set_fields(order: Order, **fields) -> Order:
    """
    Write columns directly (auto_now_add / lifecycle flags) and reload.
    """
    Order.objects.filter(pk=order.pk).update(**fields)
    order.refresh_from_db()
    return order
