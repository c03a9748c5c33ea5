from datetime import date

from django.core.management.base import BaseCommand, CommandError

from backend.notifications.jobs import expire_stock


class Command(BaseCommand):
    help = 'Write off the remaining units of every expired batch'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Treat this date (YYYY-MM-DD) as today')

    def handle(self, *args, **options):
        try:
            today = date.fromisoformat(options['date']) if options['date'] else None
        except ValueError:
            raise CommandError(f"Invalid --date: {options['date']}")

        stats = expire_stock(today=today)
        self.stdout.write(
            f"Expired {stats['entries_created']} batch(es) across {stats['products']} product(s) "
            f"in {stats['theaters']} theaters"
        )
        if stats['errors']:
            self.stdout.write(self.style.ERROR(f"{stats['errors']} theater(s) failed, see the logs"))
        else:
            self.stdout.write(self.style.SUCCESS('Stock expiry complete'))
