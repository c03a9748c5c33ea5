from datetime import date

from django.core.management.base import BaseCommand, CommandError

from backend.notifications.jobs import check_expiring_stock


class Command(BaseCommand):
    help = 'Email each theater the batches that expire within the warning window'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Reference date (YYYY-MM-DD), defaults to today')
        parser.add_argument('--days', type=int, help='Warning window in days')

    def handle(self, *args, **options):
        try:
            today = date.fromisoformat(options['date']) if options['date'] else None
        except ValueError:
            raise CommandError(f"Invalid --date: {options['date']}")

        stats = check_expiring_stock(today=today, days=options['days'])
        self.stdout.write(f"Checked {stats['theaters']} theaters, sent {stats['emails_sent']} warnings")
        if stats['errors']:
            self.stdout.write(self.style.ERROR(f"{stats['errors']} theater(s) failed, see the logs"))
        else:
            self.stdout.write(self.style.SUCCESS('Expiring stock check complete'))
