"""
Test suite for stock notification emails and scheduled jobs
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock
from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.db import transaction
from django.test import TestCase
from django.utils import timezone
from backend.core.test_utils import TestDataFactory
from backend.inventory.excel import XLSX_CONTENT_TYPE
from backend.inventory.low_stock import claim_low_stock_notification
from backend.inventory.models import StockEntry
from backend.inventory.services import StockService
from backend.notifications import jobs
from backend.notifications.emails import send_low_stock_alert
from backend.orders.models import Order
from backend.orders.services import update_order_status


class EmailTests(TestCase):
    """Test the email senders"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater(name='Galaxy Cinema', email='galaxy@test.com')
        self.product = TestDataFactory.create_product(self.theater, name='Popcorn')

    def test_low_stock_alert_has_excel_attachment(self):
        self.assertTrue(send_low_stock_alert(self.theater, [self.product]))
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, 'Low Stock Alert - Galaxy Cinema')
        self.assertEqual(message.to, ['galaxy@test.com'])
        self.assertEqual(message.alternatives[0][1], 'text/html')
        self.assertIn('Popcorn', message.alternatives[0][0])
        filename, content, mimetype = message.attachments[0]
        self.assertTrue(filename.endswith('.xlsx'))
        self.assertEqual(mimetype, XLSX_CONTENT_TYPE)

    def test_theater_without_email_is_skipped(self):
        self.theater.email = ''
        self.theater.save()
        with self.assertLogs('backend.notifications.emails', level='WARNING'):
            self.assertFalse(send_low_stock_alert(self.theater, [self.product]))
        self.assertEqual(len(mail.outbox), 0)


class RealtimeLowStockTests(TestCase):
    """Test the alert raised once a ledger change commits"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.product = TestDataFactory.create_product(self.theater, name='Candy', min_stock=10)
        self.today = timezone.localdate()

    def commit(self, operation, *args, **kwargs):
        with self.captureOnCommitCallbacks(execute=True):
            return operation(self.theater, self.product, *args, **kwargs)

    def test_alert_when_stock_drops_to_threshold_and_throttled(self):
        self.commit(StockService.add_entry, self.today, 'ADDED', 20)
        self.assertEqual(len(mail.outbox), 0)

        self.commit(StockService.record_sale, 12, sale_date=self.today)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Low Stock Alert', mail.outbox[0].subject)

        self.commit(StockService.record_sale, 1, sale_date=self.today)
        self.assertEqual(len(mail.outbox), 1)

    def test_no_alert_when_out_of_stock(self):
        self.commit(StockService.add_entry, self.today, 'ADDED', 20)
        self.commit(StockService.record_sale, 20, sale_date=self.today)
        self.assertEqual(len(mail.outbox), 0)

    def test_rolled_back_sale_sends_nothing(self):
        """Test a sale whose transaction rolls back neither alerts nor claims the throttle"""
        self.commit(StockService.add_entry, self.today, 'ADDED', 20)
        with self.assertRaises(RuntimeError):
            with transaction.atomic():
                StockService.record_sale(self.theater, self.product, 12, sale_date=self.today)
                raise RuntimeError('order failed')
        self.assertEqual(len(mail.outbox), 0)
        self.assertTrue(claim_low_stock_notification(self.theater.id, self.product.id))


class StockJobTests(TestCase):
    """Test the scheduled stock jobs"""

    def setUp(self):
        cache.clear()
        self.today = timezone.localdate()
        self.theater = TestDataFactory.create_theater(name='Galaxy Cinema', email='galaxy@test.com')
        self.product = TestDataFactory.create_product(self.theater, name='Popcorn')

    def test_check_expiring_stock(self):
        """Test batches expiring inside the window are reported with days left"""
        start = self.today - timedelta(days=1)
        StockService.add_entry(self.theater, self.product, start, 'ADDED', 10, batch_number='SOON',
                               expire_date=self.today + timedelta(days=2))
        StockService.add_entry(self.theater, self.product, start, 'ADDED', 10, batch_number='LATER',
                               expire_date=self.today + timedelta(days=30))
        mail.outbox = []

        batches = jobs.expiring_batches(self.theater, self.today, 3)
        self.assertEqual([b['batch_number'] for b in batches], ['SOON'])
        self.assertEqual(batches[0]['days_left'], 2)
        self.assertEqual(batches[0]['remaining'], 10)

        stats = jobs.check_expiring_stock(today=self.today, days=3)
        self.assertEqual(stats['emails_sent'], 1)
        self.assertEqual(stats['errors'], 0)
        self.assertEqual(mail.outbox[0].subject, 'Stock Expiration Warning - Galaxy Cinema')

    def test_check_expiring_stock_ignores_sold_out_batches(self):
        start = self.today - timedelta(days=1)
        StockService.add_entry(self.theater, self.product, start, 'ADDED', 5, expire_date=self.today + timedelta(days=1))
        StockService.record_sale(self.theater, self.product, 5, sale_date=self.today)
        mail.outbox = []
        stats = jobs.check_expiring_stock(today=self.today, days=3)
        self.assertEqual(stats['emails_sent'], 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_check_low_stock(self):
        low = TestDataFactory.create_product(self.theater, name='Nachos', min_stock=10)
        low.current_stock = 4
        low.save()
        self.product.current_stock = 50
        self.product.save()
        empty = TestDataFactory.create_product(self.theater, name='Soda')
        self.assertEqual(empty.current_stock, 0)

        stats = jobs.check_low_stock()
        self.assertEqual(stats['emails_sent'], 1)
        self.assertIn('Nachos', mail.outbox[0].alternatives[0][0])
        self.assertNotIn('Soda', mail.outbox[0].alternatives[0][0])

        # Throttled for the next run
        self.assertEqual(jobs.check_low_stock()['emails_sent'], 0)

    def test_expire_stock(self):
        past = self.today - timedelta(days=10)
        StockService.add_entry(self.theater, self.product, past, 'ADDED', 6, expire_date=past + timedelta(days=2))
        stats = jobs.expire_stock(today=self.today)
        self.assertEqual(stats['entries_created'], 1)
        self.assertEqual(StockEntry.objects.get(entry_type='EXPIRED').quantity, 6)
        self.assertEqual(jobs.expire_stock(today=self.today)['entries_created'], 0)

    def test_daily_sales_report(self):
        """Test the report covers the day's orders except cancelled ones"""
        StockService.add_entry(self.theater, self.product, self.today, 'ADDED', 50)
        first = TestDataFactory.create_order(self.theater, [(self.product, 2)])
        TestDataFactory.create_order(self.theater, [(self.product, 3)])
        cancelled = TestDataFactory.create_order(self.theater, [(self.product, 4)])
        update_order_status(cancelled, Order.STATUS_CANCELLED)
        mail.outbox = []

        rows, summary = jobs.daily_sales(self.theater, self.today)
        self.assertEqual(summary['order_count'], 2)
        self.assertEqual(summary['items_sold'], 5)
        self.assertEqual(summary['total_revenue'], first.total + Decimal('300.00'))
        self.assertEqual(rows[0]['product_name'], 'Popcorn')

        stats = jobs.send_daily_sales_reports(report_date=self.today)
        self.assertEqual(stats['emails_sent'], 1)
        self.assertIn('Daily Sales Report - Galaxy Cinema', mail.outbox[0].subject)

    def test_daily_sales_report_skips_theaters_without_orders(self):
        stats = jobs.send_daily_sales_reports(report_date=self.today)
        self.assertEqual(stats['emails_sent'], 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_failing_theater_does_not_stop_the_batch(self):
        """Test one theater's failure is logged and the others still get their email"""
        other = TestDataFactory.create_theater(name='Zenith Cinema', email='zenith@test.com')
        for theater in (self.theater, other):
            product = TestDataFactory.create_product(theater, name='Nachos', min_stock=10)
            product.current_stock = 3
            product.save()

        real_send = jobs.send_low_stock_alert

        def flaky_send(theater, products):
            if theater.name == 'Galaxy Cinema':
                raise ConnectionError('SMTP down')
            return real_send(theater, products)

        with mock.patch.object(jobs, 'send_low_stock_alert', side_effect=flaky_send):
            with self.assertLogs('backend.notifications.jobs', level='ERROR'):
                stats = jobs.check_low_stock()

        self.assertEqual(stats['errors'], 1)
        self.assertEqual(stats['emails_sent'], 1)
        self.assertEqual(mail.outbox[0].to, ['zenith@test.com'])

    def test_inactive_theaters_are_skipped(self):
        self.theater.is_active = False
        self.theater.save()
        self.assertEqual(jobs.check_low_stock()['theaters'], 0)


class JobCommandTests(TestCase):
    """Test the management commands wrapping the jobs"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()

    def run_command(self, *args):
        out = StringIO()
        call_command(*args, stdout=out)
        return out.getvalue()

    def test_commands_run(self):
        self.assertIn('Expiring stock check complete', self.run_command('check_expiring_stock'))
        self.assertIn('Low stock check complete', self.run_command('check_low_stock'))
        self.assertIn('Stock expiry complete', self.run_command('expire_stock', '--date', '2025-01-31'))
        self.assertIn('Daily sales reports complete', self.run_command('send_daily_sales_reports'))

    def test_invalid_date(self):
        from django.core.management.base import CommandError
        with self.assertRaises(CommandError):
            self.run_command('expire_stock', '--date', '31/01/2025')
