# orders/services/analytics.py

"""
ORDER ANALYTICS (ADMIN DASHBOARD)

Read-only aggregates over all orders. No writes, no side effects.

- dashboard_summary(): order/product counts, paid orders, coupon uses,
  total sales and a notional profit (fixed margin on sales).
- ai_discount_summary(): haggle markdown totals, top discounted products
  and revenue before/after markdowns.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum, Value
from django.db.models.functions import Coalesce

from orders.models import Order, OrderItem
from products.models import Product

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

NOTIONAL_PROFIT_MARGIN = Decimal("0.20")
TOP_DISCOUNTED_PRODUCTS = 5

MONEY = DecimalField(max_digits=14, decimal_places=2)


def _q(v) -> Decimal:
    return Decimal(v or 0).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def dashboard_summary() -> dict:
    agg = Order.objects.aggregate(
        num_orders=Count("id"),
        paid_orders=Count("id", filter=Q(is_paid=True)),
        coupon_uses=Count("id", filter=Q(discount_percent__gt=0)),
        total_sales=Coalesce(Sum("total_price"), Value(ZERO), output_field=MONEY),
    )

    total_sales = _q(agg["total_sales"])

    return {
        "num_orders": agg["num_orders"],
        "num_products": Product.objects.count(),
        "paid_orders": agg["paid_orders"],
        "coupon_uses": agg["coupon_uses"],
        "total_sales": total_sales,
        "total_profit": _q(total_sales * NOTIONAL_PROFIT_MARGIN),
    }


def ai_discount_summary() -> dict:
    ai_orders = Order.objects.filter(ai_discount_total__gt=0)

    agg = ai_orders.aggregate(
        count=Count("id"),
        total=Coalesce(Sum("ai_discount_total"), Value(ZERO), output_field=MONEY),
    )
    ai_orders_count = agg["count"]
    total_discount = _q(agg["total"])
    avg_discount = _q(total_discount / ai_orders_count) if ai_orders_count else ZERO

    markdown = ExpressionWrapper(
        (F("original_unit_price") - F("unit_price")) * F("quantity"),
        output_field=MONEY,
    )
    top_products = [
        {"name": row["name"], "amount": _q(row["amount"])}
        for row in (
            OrderItem.objects.filter(
                order__ai_discount_total__gt=0,
                original_unit_price__gt=F("unit_price"),
            )
            .values("name")
            .annotate(amount=Sum(markdown))
            .order_by("-amount", "name")[:TOP_DISCOUNTED_PRODUCTS]
        )
    ]

    totals = Order.objects.aggregate(
        revenue_after=Coalesce(Sum("total_price"), Value(ZERO), output_field=MONEY),
        discounts=Coalesce(Sum("ai_discount_total"), Value(ZERO), output_field=MONEY),
    )
    revenue_after = _q(totals["revenue_after"])

    return {
        "total_discount": total_discount,
        "avg_discount": avg_discount,
        "ai_orders_count": ai_orders_count,
        "top_products": top_products,
        "revenue_before": _q(revenue_after + totals["discounts"]),
        "revenue_after": revenue_after,
    }
