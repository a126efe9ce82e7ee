# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory email outbox (django.core.mail.outbox)
- Fast password hashing
- Throttling relaxed so API tests never hit 429
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_RATES": {
        "anon": "10000/min",
        "user": "10000/min",
        "public_tracking": "10000/min",
    },
}
