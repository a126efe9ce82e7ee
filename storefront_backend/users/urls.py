# users/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import MeView, UserNotificationViewSet

app_name = "users"

router = SimpleRouter()
router.register(r"notifications", UserNotificationViewSet, basename="notifications")

urlpatterns = [
    # ---------------- AUTHENTICATED ----------------
    path("me/", MeView.as_view(), name="me"),
    path("", include(router.urls)),
]
