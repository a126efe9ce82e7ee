# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules:
- Product rows are editable (name/price/stock counter for manual fixes).
- StockMovement is an append-only ledger: visible, never editable or deletable.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, StockMovement


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "unit_price", "count_in_stock", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "sku")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "movement_type", "reason", "quantity", "order", "created_at")
    list_filter = ("movement_type", "reason")
    search_fields = ("product__name", "product__sku")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
