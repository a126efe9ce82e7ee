# orders/views/errors.py

from rest_framework.response import Response

from orders.services.exceptions import OrderError


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int):
    """
    Canonical API error response.
    """
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


def order_error_response(exc: OrderError):
    return error_response(
        code=exc.code,
        message=str(exc),
        http_status=exc.http_status,
    )
