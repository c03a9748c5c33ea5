from datetime import date

from django.core.management.base import BaseCommand, CommandError

from backend.notifications.jobs import send_daily_sales_reports


class Command(BaseCommand):
    help = "Email each theater the sales report of the day"

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Report date (YYYY-MM-DD), defaults to today')

    def handle(self, *args, **options):
        try:
            report_date = date.fromisoformat(options['date']) if options['date'] else None
        except ValueError:
            raise CommandError(f"Invalid --date: {options['date']}")

        stats = send_daily_sales_reports(report_date=report_date)
        self.stdout.write(f"Checked {stats['theaters']} theaters, sent {stats['emails_sent']} reports")
        if stats['errors']:
            self.stdout.write(self.style.ERROR(f"{stats['errors']} theater(s) failed, see the logs"))
        else:
            self.stdout.write(self.style.SUCCESS('Daily sales reports complete'))
