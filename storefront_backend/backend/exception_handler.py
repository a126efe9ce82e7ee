# backend/exception_handler.py
"""
API EXCEPTION HANDLER

Wraps DRF's default handler:
- DRF/HTTP exceptions (validation, auth, 404) are handled by DRF as usual.
- DatabaseError (store unreachable, lock timeouts, ...) is logged under the
  "persistence" logger and answered with 503 in the canonical error envelope,
  so store outages never look like business rejections in logs or responses.
- Anything else falls through to Django (500).
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

persistence_logger = logging.getLogger("persistence")


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        persistence_logger.error(
            "Persistence failure while handling request",
            exc_info=exc,
            extra={"view": view.__class__.__name__ if view else None},
        )
        return Response(
            {
                "error": {
                    "code": "STORE_UNAVAILABLE",
                    "message": "The order store is temporarily unavailable.",
                }
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return None
