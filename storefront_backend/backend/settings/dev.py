# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS
- Order emails are printed to the console unless EMAIL_BACKEND is set.
- Lifecycle/notification logs at DEBUG so transitions are visible while
  clicking through the storefront.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

# Vite dev server
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"])

EMAIL_BACKEND = env(
    "EMAIL_BACKEND", default="django.core.mail.backends.console.EmailBackend"
)

LOGGING = {
    **LOGGING,
    "loggers": {
        **LOGGING["loggers"],
        "orders": {"handlers": ["console"], "level": "DEBUG", "propagate": False},
        "products": {"handlers": ["console"], "level": "DEBUG", "propagate": False},
    },
}
