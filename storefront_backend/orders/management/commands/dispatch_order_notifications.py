# storefront_backend/orders/management/commands/dispatch_order_notifications.py

"""
PATH: orders/management/commands/dispatch_order_notifications.py

Retry undelivered order notifications (email + in-app).

- Picks rows in status pending/failed (or a stale sending claim) with attempts below the ceiling
  (ORDER_NOTIFICATION_MAX_ATTEMPTS unless --max-attempts is given).
- Safe to run repeatedly (cron) or alongside post-commit dispatch: rows are
  claimed before sending and delivered halves are never re-sent.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand

from orders.services.notifications import dispatch_pending_notifications


class Command(BaseCommand):
    help = "Dispatch pending/failed order notifications."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=100)
        parser.add_argument("--max-attempts", type=int, default=None)

    def handle(self, *args, **options):
        summary = dispatch_pending_notifications(
            max_attempts=options["max_attempts"],
            limit=options["limit"],
        )

        style = self.style.SUCCESS if not summary["failed"] else self.style.WARNING
        self.stdout.write(
            style(
                f"Order notifications: {summary['sent']} sent, "
                f"{summary['failed']} failed, {summary['skipped']} skipped."
            )
        )
