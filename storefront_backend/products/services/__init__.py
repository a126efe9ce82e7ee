"""
PATH: products/services/__init__.py

Inventory services export surface.
"""

from .inventory import decrement_stock, increment_stock

__all__ = [
    "decrement_stock",
    "increment_stock",
]
