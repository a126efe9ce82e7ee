# orders/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from orders.views import OrderViewSet, TrackingStatusView

router = SimpleRouter()
router.register(r"", OrderViewSet, basename="orders")

urlpatterns = [
    # Must be above the router so "track" never reaches the detail route
    path("track/<str:token>/", TrackingStatusView.as_view(), name="order-tracking"),
    path("", include(router.urls)),
]
