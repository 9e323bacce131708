from django.core.management.base import BaseCommand

from apps.notifications.services.scheduler import reschedule_pending


class Command(BaseCommand):
    help = "Re-queue scheduled notifications whose run time is still in the future."

    def handle(self, *args, **options):
        count = reschedule_pending()
        self.stdout.write(self.style.SUCCESS(f"Re-queued {count} scheduled notification(s)."))
