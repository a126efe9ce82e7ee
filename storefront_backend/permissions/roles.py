# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_ORDERS_PLACE = "orders.place"               # checkout, pay, cancel/return own orders
CAP_ORDERS_VIEW_ALL = "orders.view_all"         # admin order list, any order detail
CAP_ORDERS_FULFILL = "orders.fulfill"           # mark delivered
CAP_ORDERS_REFUND = "orders.refund"             # mark cancellation/return refunds processed
CAP_ORDERS_TRACKING = "orders.tracking"         # see + rotate tracking tokens
CAP_REPORTS_VIEW_SALES = "reports.view_sales"   # dashboard summary, haggle analytics

ALL_CAPABILITIES = {
    CAP_ORDERS_PLACE,
    CAP_ORDERS_VIEW_ALL,
    CAP_ORDERS_FULFILL,
    CAP_ORDERS_REFUND,
    CAP_ORDERS_TRACKING,
    CAP_REPORTS_VIEW_SALES,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_CUSTOMER: {
        CAP_ORDERS_PLACE,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    if not user or not getattr(user, "is_authenticated", False):
        return set()

    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)

    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    return capability in effective_capabilities_for(user)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_ORDERS_REFUND
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default
            return False

        return user_has_capability(user, required)

