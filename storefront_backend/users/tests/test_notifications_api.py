# users/tests/test_notifications_api.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from users.models import UserNotification

User = get_user_model()


class NotificationInboxTests(TestCase):
    """
    In-app inbox: users see and mark only their own notifications.
    """

    def setUp(self):
        self.client = APIClient()

        self.user = User.objects.create_user(email="asha@example.com", password="pass")
        self.other = User.objects.create_user(email="ravi@example.com", password="pass")

        self.mine = UserNotification.objects.create(user=self.user, message="Order #AB12CD34 cancelled.")
        UserNotification.objects.create(user=self.user, message="Refund processed.", severity="success")
        self.theirs = UserNotification.objects.create(user=self.other, message="Not yours")

        self.client.force_authenticate(self.user)

    def test_list_shows_only_own_notifications(self):
        response = self.client.get(reverse("users:notifications-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
        messages = {n["message"] for n in response.data["results"]}
        self.assertNotIn("Not yours", messages)

    def test_mark_one_read(self):
        response = self.client.post(reverse("users:notifications-read", args=[self.mine.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.mine.refresh_from_db()
        self.assertTrue(self.mine.is_read)

    def test_cannot_mark_someone_elses(self):
        response = self.client.post(reverse("users:notifications-read", args=[self.theirs.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.theirs.refresh_from_db()
        self.assertFalse(self.theirs.is_read)

    def test_mark_all_read(self):
        response = self.client.post(reverse("users:notifications-read-all"))

        self.assertEqual(response.data["updated"], 2)
        self.assertFalse(UserNotification.objects.filter(user=self.user, is_read=False).exists())
        self.assertFalse(UserNotification.objects.get(pk=self.theirs.pk).is_read)

    def test_me_reports_unread_count(self):
        response = self.client.get(reverse("users:me"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["unread_notifications"], 2)
        self.assertFalse(response.data["is_admin"])
