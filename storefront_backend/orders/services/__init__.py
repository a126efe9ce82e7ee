# orders/services/__init__.py
