"""
Test suite for the monthly stock ledger
Tests: balance arithmetic, carry-forward, FIFO batches, auto expiry, month moves, API access and exports
"""
from datetime import date, timedelta
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory import ledger
from backend.inventory.excel import XLSX_CONTENT_TYPE
from backend.inventory.exceptions import InvalidStockEntry, MonthlyStockNotFound, StockEntryNotFound
from backend.inventory.models import MonthlyStock, StockEntry
from backend.inventory.services import StockService
from backend.theaters.models import TheaterUser


def month_start(day, months_back=0):
    """First day of the month ``months_back`` months before ``day``"""
    start = day.replace(day=1)
    for _ in range(months_back):
        start = (start - timedelta(days=1)).replace(day=1)
    return start


def entry(entry_type, quantity, day):
    return StockEntry(date=day, entry_type=entry_type, quantity=quantity,
                      **ledger.quantity_fields(entry_type, quantity))


class LedgerArithmeticTests(TestCase):
    """Test the pure balance walk"""

    def setUp(self):
        self.day = month_start(timezone.localdate(), 1)

    def test_quantity_fields_by_type(self):
        self.assertEqual(ledger.quantity_fields('ADDED', 5)['invord_stock'], 5)
        self.assertEqual(ledger.quantity_fields('RETURNED', 2)['invord_stock'], 2)
        self.assertEqual(ledger.quantity_fields('SOLD', 3)['sales'], 3)
        self.assertEqual(ledger.quantity_fields('EXPIRED', 4)['expired_stock'], 4)
        self.assertEqual(ledger.quantity_fields('DAMAGED', 1)['damage_stock'], 1)
        self.assertEqual(ledger.quantity_fields('ADJUSTMENT', 7)['invord_stock'], 7)
        negative = ledger.quantity_fields('ADJUSTMENT', -6)
        self.assertEqual(negative['sales'], 6)
        self.assertEqual(negative['invord_stock'], 0)

    def test_balance_clamps_at_zero(self):
        entries = [
            entry('SOLD', 10, self.day),
            entry('ADDED', 3, self.day + timedelta(days=1)),
        ]
        result = ledger.recalculate(5, entries)
        self.assertEqual(entries[0].old_stock, 5)
        self.assertEqual(entries[0].balance, 0)
        self.assertEqual(entries[1].old_stock, 0)
        self.assertEqual(entries[1].balance, 3)
        self.assertEqual(result['closing_balance'], 3)
        self.assertEqual(result['total_sales'], 10)

    def test_entries_walk_in_date_order(self):
        later = entry('SOLD', 4, self.day + timedelta(days=5))
        earlier = entry('ADDED', 10, self.day)
        result = ledger.recalculate(0, [later, earlier])
        self.assertEqual(earlier.balance, 10)
        self.assertEqual(later.balance, 6)
        self.assertEqual(result['closing_balance'], later.balance)

    def test_second_pass_changes_nothing(self):
        entries = [entry('ADDED', 10, self.day), entry('DAMAGED', 2, self.day + timedelta(days=2))]
        first = ledger.recalculate(1, entries)
        second = ledger.recalculate(1, entries)
        self.assertEqual(len(first['changed']), 2)
        self.assertEqual(second['changed'], [])
        self.assertEqual(first['closing_balance'], second['closing_balance'])

    def test_closing_without_entries_is_opening(self):
        self.assertEqual(ledger.recalculate(12, [])['closing_balance'], 12)


class StockServiceTests(TestCase):
    """Test StockService ledger mutations"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.product = TestDataFactory.create_product(self.theater)
        self.today = timezone.localdate()
        self.last_month = month_start(self.today, 1)
        self.two_months_ago = month_start(self.today, 2)
        self.three_months_ago = month_start(self.today, 3)

    def add(self, day, entry_type, quantity, **kwargs):
        return StockService.add_entry(self.theater, self.product, day, entry_type, quantity, **kwargs)

    def monthly(self, day):
        return MonthlyStock.objects.get(theater=self.theater, product=self.product,
                                        year=day.year, month_number=day.month)

    def test_add_entry_creates_month_and_syncs_product(self):
        """Test the first entry creates the month document and mirrors the balance"""
        self.add(self.last_month + timedelta(days=4), 'ADDED', 50)
        monthly = self.monthly(self.last_month)
        self.assertEqual(monthly.old_stock, 0)
        self.assertEqual(monthly.total_invord_stock, 50)
        self.assertEqual(monthly.closing_balance, 50)
        self.assertEqual(monthly.month, self.last_month.strftime('%B'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 50)

    def test_last_entry_balance_equals_closing_balance(self):
        """Test the closing balance is the running balance after the last entry"""
        day = self.last_month
        self.add(day, 'ADDED', 40)
        self.add(day + timedelta(days=1), 'SOLD', 12)
        self.add(day + timedelta(days=2), 'DAMAGED', 3)
        self.add(day + timedelta(days=3), 'ADJUSTMENT', -5)
        self.add(day + timedelta(days=4), 'ADJUSTMENT', 2)

        monthly = self.monthly(day)
        entries = list(monthly.entries.order_by('date', 'id'))
        self.assertEqual(entries[-1].balance, monthly.closing_balance)
        self.assertEqual(monthly.closing_balance, 40 - 12 - 3 - 5 + 2)
        self.assertEqual(monthly.total_sales, 17)
        self.assertEqual(monthly.total_damage_stock, 3)
        self.assertEqual(monthly.total_invord_stock, 42)
        for previous, current in zip(entries, entries[1:]):
            self.assertEqual(current.old_stock, previous.balance)

    def test_recalculate_is_idempotent(self):
        """Test running the recalculation again leaves everything untouched"""
        day = self.last_month
        self.add(day, 'ADDED', 10)
        self.add(day + timedelta(days=1), 'SOLD', 4)
        monthly = self.monthly(day)
        before = [(e.old_stock, e.balance) for e in monthly.entries.all()]
        updated_at = monthly.updated_at

        StockService.recalculate_balances(monthly)
        monthly.refresh_from_db()

        self.assertEqual([(e.old_stock, e.balance) for e in monthly.entries.all()], before)
        self.assertEqual(monthly.updated_at, updated_at)

    def test_backfill_carries_forward_into_later_months(self):
        """Test adding stock to an earlier month re-seeds every later month"""
        self.add(self.last_month + timedelta(days=2), 'ADDED', 10)
        self.add(self.two_months_ago + timedelta(days=2), 'ADDED', 5)

        self.assertEqual(self.monthly(self.two_months_ago).closing_balance, 5)
        last = self.monthly(self.last_month)
        self.assertEqual(last.old_stock, 5)
        self.assertEqual(last.closing_balance, 15)
        self.assertEqual(last.entries.get().old_stock, 5)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 15)

    def test_carry_forward_skips_missing_months(self):
        """Test a month seeds from the latest earlier month even across a gap"""
        self.add(self.three_months_ago, 'ADDED', 8)
        self.add(self.last_month, 'SOLD', 3)
        self.assertEqual(self.monthly(self.last_month).old_stock, 8)
        self.assertEqual(self.monthly(self.last_month).closing_balance, 5)
        self.assertFalse(MonthlyStock.objects.filter(year=self.two_months_ago.year,
                                                     month_number=self.two_months_ago.month).exists())

    def test_sale_draws_from_oldest_batch_first(self):
        """Test FIFO allocation across batches of different months"""
        first = self.add(self.two_months_ago, 'ADDED', 10, batch_number='B1')
        second = self.add(self.last_month, 'ADDED', 20, batch_number='B2')
        sale = StockService.record_sale(self.theater, self.product, 15,
                                        sale_date=self.last_month + timedelta(days=9), reference='ORD-1')

        self.assertEqual(sale.entry_type, 'SOLD')
        self.assertEqual(sale.reference, 'ORD-1')
        self.assertEqual([(d['entry_id'], d['deducted']) for d in sale.fifo_details],
                         [(first.id, 10), (second.id, 5)])
        self.assertEqual(sale.fifo_details[0]['batch_number'], 'B1')
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.consumed_stock, 10)
        self.assertEqual(first.remaining_stock, 0)
        self.assertEqual(second.consumed_stock, 5)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 15)

    def test_fifo_details_only_come_from_allocation(self):
        with self.assertRaises(TypeError):
            StockService.add_entry(self.theater, self.product, self.last_month, 'SOLD', 1,
                                   fifo_details=[{'entry_id': 1, 'deducted': 1}])
        added = StockService.add_entry(self.theater, self.product, self.last_month, 'ADDED', 5)
        self.assertEqual(added.fifo_details, [])

    def test_sale_skips_expired_batches(self):
        """Test a batch past its expire date is not sold from"""
        expired = self.add(self.two_months_ago, 'ADDED', 10, expire_date=self.two_months_ago + timedelta(days=2))
        fresh = self.add(self.last_month, 'ADDED', 10)
        sale = StockService.record_sale(self.theater, self.product, 5, sale_date=self.last_month + timedelta(days=4))

        self.assertEqual([d['entry_id'] for d in sale.fifo_details], [fresh.id])
        expired.refresh_from_db()
        self.assertEqual(expired.consumed_stock, 0)

    def test_backdated_sale_takes_units_back_from_write_off(self):
        """Test a sale dated before an expiry that was already written off draws from the expired batch"""
        old = self.add(date(2024, 1, 1), 'ADDED', 10, expire_date=date(2024, 1, 5))
        self.add(date(2024, 1, 2), 'ADDED', 10)
        write_off = StockService.auto_expire(self.theater, self.product, today=date(2024, 1, 10))[0]
        self.assertEqual(write_off.quantity, 10)

        sale = StockService.record_sale(self.theater, self.product, 4, sale_date=date(2024, 1, 3))

        self.assertEqual([(d['entry_id'], d['deducted']) for d in sale.fifo_details], [(old.id, 4)])
        old.refresh_from_db()
        self.assertEqual(old.consumed_stock, 4)
        self.assertEqual(old.written_off_stock, 6)
        write_off.refresh_from_db()
        self.assertEqual(write_off.quantity, 6)
        self.assertEqual(write_off.expired_stock, 6)
        monthly = MonthlyStock.objects.get(theater=self.theater, product=self.product, year=2024, month_number=1)
        self.assertEqual(monthly.total_expired_stock, 6)
        self.assertEqual(monthly.closing_balance, 10)
        self.assertEqual(StockService.auto_expire(self.theater, self.product, today=date(2024, 1, 10)), [])

    def test_backdated_sale_can_absorb_whole_write_off(self):
        old = self.add(date(2024, 1, 1), 'ADDED', 5, expire_date=date(2024, 1, 5))
        StockService.auto_expire(self.theater, self.product, today=date(2024, 1, 10))
        StockService.record_sale(self.theater, self.product, 5, sale_date=date(2024, 1, 4))

        old.refresh_from_db()
        self.assertEqual(old.written_off_stock, 0)
        self.assertFalse(old.write_offs.exists())
        monthly = MonthlyStock.objects.get(theater=self.theater, product=self.product, year=2024, month_number=1)
        self.assertEqual(monthly.total_sales, 5)
        self.assertEqual(monthly.total_expired_stock, 0)
        self.assertEqual(monthly.closing_balance, 0)

    def test_low_stock_alert_waits_for_commit(self):
        """Test the alert goes out only after the ledger change commits"""
        self.product.min_stock = 10
        self.product.save()
        self.add(self.last_month, 'ADDED', 20)
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            StockService.record_sale(self.theater, self.product, 12, sale_date=self.last_month + timedelta(days=1))
        self.assertEqual(len(mail.outbox), 0)

        for callback in callbacks:
            callback()
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Low Stock Alert', mail.outbox[0].subject)

    def test_sale_shortfall_is_logged_not_raised(self):
        """Test over-selling clamps the balance and logs a warning"""
        self.add(self.last_month, 'ADDED', 5)
        with self.assertLogs('backend.inventory.services', level='WARNING') as logs:
            sale = StockService.record_sale(self.theater, self.product, 8, sale_date=self.last_month + timedelta(days=1))
        self.assertTrue(any('Insufficient batch stock' in line for line in logs.output))
        self.assertEqual(sum(d['deducted'] for d in sale.fifo_details), 5)
        self.assertEqual(sale.balance, 0)
        self.assertEqual(self.monthly(self.last_month).closing_balance, 0)

    def test_record_return_creates_new_batch(self):
        """Test returned units can be sold again"""
        self.add(self.last_month, 'ADDED', 2)
        StockService.record_sale(self.theater, self.product, 2, sale_date=self.last_month + timedelta(days=1))
        returned = StockService.record_return(self.theater, self.product, 1,
                                              return_date=self.last_month + timedelta(days=2), reference='ORD-9')
        self.assertTrue(returned.is_batch)
        self.assertEqual(returned.invord_stock, 1)
        self.assertIn('ORD-9', returned.notes)
        sale = StockService.record_sale(self.theater, self.product, 1, sale_date=self.last_month + timedelta(days=3))
        self.assertEqual(sale.fifo_details[0]['entry_id'], returned.id)

    def test_update_entry_moves_across_months(self):
        """Test changing the date into another month moves the entry"""
        batch = self.add(self.last_month + timedelta(days=2), 'ADDED', 10)
        moved = StockService.update_entry(self.theater, self.product, batch.id,
                                          {'date': self.two_months_ago + timedelta(days=2)})

        self.assertEqual(moved.monthly_stock.period, (self.two_months_ago.year, self.two_months_ago.month))
        self.assertEqual(self.monthly(self.two_months_ago).closing_balance, 10)
        last = self.monthly(self.last_month)
        self.assertEqual(last.entries.count(), 0)
        self.assertEqual(last.old_stock, 10)
        self.assertEqual(last.closing_balance, 10)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 10)

    def test_update_sale_reallocates_batches(self):
        """Test editing a sale releases its old allocation before drawing again"""
        batch = self.add(self.last_month, 'ADDED', 10)
        sale = StockService.record_sale(self.theater, self.product, 4, sale_date=self.last_month + timedelta(days=1))
        sale = StockService.update_entry(self.theater, self.product, sale.id, {'quantity': 6})

        batch.refresh_from_db()
        self.assertEqual(batch.consumed_stock, 6)
        self.assertEqual(sale.fifo_details[0]['deducted'], 6)
        self.assertEqual(sale.balance, 4)

    def test_update_batch_below_used_units_rejected(self):
        """Test a batch cannot shrink below what was already sold from it"""
        batch = self.add(self.last_month, 'ADDED', 10)
        StockService.record_sale(self.theater, self.product, 6, sale_date=self.last_month + timedelta(days=1))
        with self.assertRaises(InvalidStockEntry):
            StockService.update_entry(self.theater, self.product, batch.id, {'quantity': 5})
        with self.assertRaises(InvalidStockEntry):
            StockService.update_entry(self.theater, self.product, batch.id, {'entry_type': 'DAMAGED'})

    def test_update_unknown_entry(self):
        with self.assertRaises(StockEntryNotFound):
            StockService.update_entry(self.theater, self.product, 999999, {'quantity': 1})

    def test_delete_sale_releases_batch(self):
        """Test deleting a sale gives its units back to the batch"""
        batch = self.add(self.last_month, 'ADDED', 10)
        sale = StockService.record_sale(self.theater, self.product, 7, sale_date=self.last_month + timedelta(days=1))
        snapshot = StockService.delete_entry(self.theater, self.product, sale.id)

        self.assertEqual(snapshot['entry_type'], 'SOLD')
        self.assertEqual(snapshot['quantity'], 7)
        batch.refresh_from_db()
        self.assertEqual(batch.consumed_stock, 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 10)

    def test_auto_expire_writes_off_remaining_units(self):
        """Test an expired batch is written off the day after it expires, once"""
        expire_date = self.two_months_ago + timedelta(days=9)
        batch = self.add(self.two_months_ago, 'ADDED', 10, batch_number='LOT-7', expire_date=expire_date)
        StockService.record_sale(self.theater, self.product, 3, sale_date=self.two_months_ago + timedelta(days=4))

        created = StockService.auto_expire(self.theater, self.product, today=self.today)
        self.assertEqual(len(created), 1)
        write_off = created[0]
        self.assertEqual(write_off.entry_type, 'EXPIRED')
        self.assertEqual(write_off.quantity, 7)
        self.assertEqual(write_off.expired_stock, 7)
        self.assertEqual(write_off.date, expire_date + timedelta(days=1))
        self.assertEqual(write_off.source_entry_id, batch.id)
        self.assertTrue(write_off.notes.startswith('Auto-expired'))
        batch.refresh_from_db()
        self.assertEqual(batch.written_off_stock, 7)
        self.assertEqual(batch.remaining_stock, 0)

        self.assertEqual(StockService.auto_expire(self.theater, self.product, today=self.today), [])
        self.assertEqual(StockEntry.objects.filter(entry_type='EXPIRED').count(), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 0)

    def test_batch_usable_through_expire_date(self):
        """Test a batch is only expired from the day after its expire date"""
        expire_date = self.two_months_ago + timedelta(days=5)
        self.add(self.two_months_ago, 'ADDED', 4, expire_date=expire_date)
        self.assertEqual(StockService.auto_expire(self.theater, self.product, today=expire_date), [])
        self.assertEqual(len(StockService.auto_expire(self.theater, self.product,
                                                      today=expire_date + timedelta(days=1))), 1)

    def test_automatic_expiry_entries_cannot_be_edited(self):
        self.add(self.two_months_ago, 'ADDED', 4, expire_date=self.two_months_ago + timedelta(days=1))
        write_off = StockService.auto_expire(self.theater, self.product, today=self.today)[0]
        with self.assertRaises(InvalidStockEntry):
            StockService.update_entry(self.theater, self.product, write_off.id, {'quantity': 1})

    def test_delete_batch_removes_its_write_offs(self):
        """Test deleting an expired batch also deletes the automatic write-off"""
        batch = self.add(self.two_months_ago, 'ADDED', 4, expire_date=self.two_months_ago + timedelta(days=1))
        StockService.auto_expire(self.theater, self.product, today=self.today)
        StockService.delete_entry(self.theater, self.product, batch.id)
        self.assertFalse(StockEntry.objects.filter(monthly_stock__product=self.product).exists())
        self.assertEqual(self.monthly(self.two_months_ago).closing_balance, 0)

    def test_clear_month(self):
        """Test clearing a month removes its entries and rebalances later months"""
        self.add(self.two_months_ago, 'ADDED', 10)
        self.add(self.two_months_ago + timedelta(days=1), 'DAMAGED', 1)
        self.add(self.last_month, 'SOLD', 2)

        cleared = StockService.clear_month(self.theater, self.product,
                                           self.two_months_ago.year, self.two_months_ago.month)
        self.assertEqual(cleared, 2)
        self.assertEqual(self.monthly(self.two_months_ago).closing_balance, 0)
        self.assertEqual(self.monthly(self.last_month).old_stock, 0)

    def test_clear_unknown_month(self):
        with self.assertRaises(MonthlyStockNotFound):
            StockService.clear_month(self.theater, self.product, 2001, 1)

    def test_invalid_entries_rejected(self):
        with self.assertRaises(InvalidStockEntry):
            self.add(self.last_month, 'ADDED', 0)
        with self.assertRaises(InvalidStockEntry):
            self.add(self.last_month, 'SOLD', -2)
        with self.assertRaises(InvalidStockEntry):
            self.add(self.last_month, 'ADDED', 5, expire_date=self.last_month - timedelta(days=1))
        with self.assertRaises(InvalidStockEntry):
            self.add(self.last_month, 'GIFTED', 5)
        with self.assertRaises(InvalidStockEntry):
            StockService.get_or_create_monthly(self.theater, self.product, 2024, 13)
        self.assertFalse(StockEntry.objects.exists())

    def test_monthly_view_hides_entries_after_today(self):
        """Test entries dated after the reference day stay hidden"""
        self.add(self.last_month + timedelta(days=4), 'ADDED', 10)
        self.add(self.last_month + timedelta(days=19), 'SOLD', 2)
        data = StockService.get_monthly_stock(self.theater, self.product,
                                              year=self.last_month.year, month=self.last_month.month,
                                              today=self.last_month + timedelta(days=9))
        self.assertEqual(len(data['entries']), 1)
        self.assertEqual(data['statistics']['total_added'], 10)

    def test_monthly_view_of_untouched_month_is_not_saved(self):
        """Test reading an empty month returns its carried opening balance without creating it"""
        self.add(self.two_months_ago, 'ADDED', 6)
        count = MonthlyStock.objects.count()
        data = StockService.get_monthly_stock(self.theater, self.product,
                                              year=self.last_month.year, month=self.last_month.month)
        self.assertIsNone(data['monthly'].pk)
        self.assertEqual(data['statistics']['opening_balance'], 6)
        self.assertEqual(data['statistics']['closing_balance'], 6)
        self.assertEqual(data['entries'], [])
        self.assertEqual(MonthlyStock.objects.count(), count)

    def test_rebuild_repairs_drift(self):
        """Test rebuild re-derives stored figures that were edited behind the ledger's back"""
        self.add(self.two_months_ago, 'ADDED', 10)
        self.add(self.last_month, 'SOLD', 4)
        MonthlyStock.objects.filter(year=self.last_month.year, month_number=self.last_month.month) \
            .update(old_stock=99, closing_balance=95)

        self.assertEqual(StockService.rebuild(self.theater, self.product), 1)
        last = self.monthly(self.last_month)
        self.assertEqual(last.old_stock, 10)
        self.assertEqual(last.closing_balance, 6)
        self.assertEqual(StockService.rebuild(self.theater, self.product), 0)

    def test_theater_overview_refreshes_after_mutation(self):
        """Test the cached overview is dropped when the ledger change commits"""
        self.add(self.last_month, 'ADDED', 3)
        overview = StockService.theater_overview(self.theater, self.last_month.year, self.last_month.month)
        row = overview['products'][0]
        self.assertEqual(row['closing_balance'], 3)
        self.assertEqual(row['status'], 'Low Stock')
        self.assertEqual(overview['period']['month_name'], self.last_month.strftime('%B'))

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.add(self.last_month + timedelta(days=1), 'ADDED', 20)
        # Still cached until the transaction commits
        overview = StockService.theater_overview(self.theater, self.last_month.year, self.last_month.month)
        self.assertEqual(overview['products'][0]['closing_balance'], 3)

        for callback in callbacks:
            callback()
        overview = StockService.theater_overview(self.theater, self.last_month.year, self.last_month.month)
        self.assertEqual(overview['products'][0]['closing_balance'], 23)
        self.assertEqual(overview['products'][0]['status'], 'In Stock')
        self.assertEqual(overview['summary']['total_invord_stock'], 23)

    def test_theater_overview_lists_products_without_ledger(self):
        other = TestDataFactory.create_product(self.theater, name='Zz Untouched')
        overview = StockService.theater_overview(self.theater, self.last_month.year, self.last_month.month)
        row = next(r for r in overview['products'] if r['product_id'] == other.id)
        self.assertEqual(row['closing_balance'], 0)
        self.assertEqual(row['status'], 'Out of Stock')


class StockAPITests(TestCase):
    """Test stock ledger API endpoints"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.product = TestDataFactory.create_product(self.theater, name='Popcorn')
        self.manager = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        self.outsider = TestDataFactory.create_user()
        TestDataFactory.add_member(self.theater, self.manager, role=TheaterUser.ROLE_MANAGER)
        TestDataFactory.add_member(self.theater, self.staff, role=TheaterUser.ROLE_STAFF)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)
        self.url = f'/api/v1/stock/{self.theater.id}/{self.product.id}/'
        self.today = timezone.localdate()

    def post_entry(self, **data):
        payload = {'date': self.today.isoformat(), 'entry_type': 'ADDED', 'quantity': 50}
        payload.update(data)
        return self.client.post(self.url, payload, format='json')

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_non_member_denied(self):
        self.client.authenticate_user(self.outsider)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_can_read_but_not_write(self):
        self.client.authenticate_user(self.staff)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_200_OK)
        self.assertEqual(self.post_entry().status_code, status.HTTP_403_FORBIDDEN)

    def test_add_entry(self):
        """Test adding stock returns the entry, the month and the new stock level"""
        response = self.post_entry(batch_number='LOT-1')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['entry']['balance'], 50)
        self.assertEqual(response.data['entry']['batch_number'], 'LOT-1')
        self.assertEqual(response.data['monthly']['closing_balance'], 50)
        self.assertEqual(response.data['current_stock'], 50)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Stock Added - Popcorn', mail.outbox[0].subject)

    def test_add_entry_validation(self):
        self.assertEqual(self.post_entry(quantity=0).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.post_entry(entry_type='SOLD', quantity=-1).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.post_entry(entry_type='LOST').status_code, status.HTTP_400_BAD_REQUEST)
        response = self.post_entry(expire_date=(self.today - timedelta(days=1)).isoformat())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_monthly_stock(self):
        self.post_entry()
        self.post_entry(entry_type='SOLD', quantity=5)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['entries']), 2)
        self.assertEqual(response.data['current_stock'], 45)
        self.assertEqual(response.data['statistics']['total_sold'], 5)
        self.assertEqual(response.data['period']['month'], self.today.month)
        self.assertIn('no-store', response['Cache-Control'])

    def test_get_invalid_month(self):
        response = self.client.get(self.url, {'year': self.today.year, 'month': 13})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_product_of_other_theater_not_found(self):
        other = TestDataFactory.create_product(TestDataFactory.create_theater())
        response = self.client.get(f'/api/v1/stock/{self.theater.id}/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_and_delete_entry(self):
        entry_id = self.post_entry().data['entry']['id']
        response = self.client.put(f'{self.url}{entry_id}/', {'quantity': 30}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['current_stock'], 30)

        response = self.client.delete(f'{self.url}{entry_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted']['id'], entry_id)
        self.assertEqual(response.data['current_stock'], 0)

    def test_update_unknown_entry(self):
        response = self.client.put(f'{self.url}999999/', {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear_month(self):
        self.post_entry()
        self.post_entry(entry_type='DAMAGED', quantity=2)
        response = self.client.delete(f'{self.url}clear-month/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['cleared_count'], 2)
        self.assertEqual(response.data['current_stock'], 0)

    def test_clear_unknown_month(self):
        response = self.client.delete(f'{self.url}clear-month/?year=2001&month=1')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_rebuild(self):
        self.post_entry()
        response = self.client.post(f'{self.url}rebuild/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['months_fixed'], 0)
        self.assertEqual(response.data['current_stock'], 50)

    def test_theater_overview(self):
        self.post_entry()
        response = self.client.get(f'/api/v1/stock/{self.theater.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['product_count'], 1)
        self.assertEqual(response.data['products'][0]['product_name'], 'Popcorn')
        self.assertEqual(response.data['products'][0]['closing_balance'], 50)

    def test_excel_exports(self):
        self.post_entry()
        for url in (f'/api/v1/stock/excel/{self.theater.id}/{self.product.id}/',
                    f'/api/v1/stock/excel/{self.theater.id}/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
            self.assertIn('attachment; filename="stock_', response['Content-Disposition'])
            self.assertTrue(response.content.startswith(b'PK'))
