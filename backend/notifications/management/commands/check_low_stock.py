from django.core.management.base import BaseCommand

from backend.notifications.jobs import check_low_stock


class Command(BaseCommand):
    help = 'Email each theater its products at or below the minimum stock level'

    def handle(self, *args, **options):
        stats = check_low_stock()
        self.stdout.write(f"Checked {stats['theaters']} theaters, sent {stats['emails_sent']} alerts")
        if stats['errors']:
            self.stdout.write(self.style.ERROR(f"{stats['errors']} theater(s) failed, see the logs"))
        else:
            self.stdout.write(self.style.SUCCESS('Low stock check complete'))
