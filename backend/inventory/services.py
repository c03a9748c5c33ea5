"""
Monthly stock ledger service.

Every mutation follows the same cycle inside one transaction: touch the
entries, recalculate the affected months, push closing balances forward into
later months and mirror the latest balance onto ``Product.current_stock``.
Dropping the theater's cached overviews and the low stock alert wait for commit.

Batches are ADDED/RETURNED entries. Sales draw from them oldest first (FIFO)
and record what they took in ``fifo_details``; expired leftovers are written
off by ``auto_expire`` with an EXPIRED entry pointing back at the batch.
"""
import calendar
import logging
from datetime import date, timedelta

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from backend.catalog.models import Product
from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_stock_cache, get_cached_stock_overview, cache_stock_overview
from . import ledger
from .exceptions import MonthlyStockNotFound, StockEntryNotFound, InvalidStockEntry
from .low_stock import check_low_stock_realtime
from .models import MonthlyStock, StockEntry

logger = logging.getLogger(__name__)

TOTAL_FIELDS = ['total_invord_stock', 'total_sales', 'total_expired_stock', 'total_damage_stock', 'closing_balance']
ENTRY_TYPES = {choice for choice, _ in StockEntry.TYPE_CHOICES}


def _before(year, month):
    return Q(year__lt=year) | Q(year=year, month_number__lt=month)


def _after(year, month):
    return Q(year__gt=year) | Q(year=year, month_number__gt=month)


def _on_or_before(year, month):
    return Q(year__lt=year) | Q(year=year, month_number__lte=month)


def _actor(user):
    return user if user is not None and user.is_authenticated else None


def validate_period(year, month):
    """Coerce and check a (year, month) pair"""
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise InvalidStockEntry('Year and month must be integers')
    if not 1 <= month <= 12:
        raise InvalidStockEntry(f'Invalid month: {month}')
    if not 2000 <= year <= 2100:
        raise InvalidStockEntry(f'Invalid year: {year}')
    return year, month


def validate_entry(entry_type, quantity, entry_date, expire_date=None):
    if entry_type not in ENTRY_TYPES:
        raise InvalidStockEntry(f'Invalid entry type: {entry_type}')
    if not isinstance(entry_date, date):
        raise InvalidStockEntry('Entry date is required')
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidStockEntry('Quantity must be a whole number')
    if quantity == 0:
        raise InvalidStockEntry('Quantity cannot be zero')
    if quantity < 0 and entry_type != StockEntry.TYPE_ADJUSTMENT:
        raise InvalidStockEntry('Quantity must be positive; use an ADJUSTMENT entry to reduce stock')
    if expire_date is not None and expire_date < entry_date:
        raise InvalidStockEntry('Expire date cannot be before the entry date')


class StockService:
    """Operations on the per (theater, product, month) stock ledger"""

    # ----- month documents -----

    @staticmethod
    def get_previous_month_balance(theater, product, year, month):
        """Closing balance of the latest month before (year, month), 0 if none"""
        previous = (MonthlyStock.objects
                    .filter(theater=theater, product=product)
                    .filter(_before(year, month))
                    .order_by('-year', '-month_number')
                    .only('closing_balance')
                    .first())
        return previous.closing_balance if previous else 0

    @classmethod
    def get_or_create_monthly(cls, theater, product, year, month):
        year, month = validate_period(year, month)
        opening = cls.get_previous_month_balance(theater, product, year, month)
        monthly, created = MonthlyStock.objects.get_or_create(
            theater=theater,
            product=product,
            year=year,
            month_number=month,
            defaults={'old_stock': opening, 'closing_balance': opening},
        )
        if created:
            logger.info(f"Created stock ledger for product {product.id} in theater {theater.id} "
                        f"for {month}/{year} with opening balance {opening}")
        elif monthly.old_stock != opening:
            logger.info(f"Re-seeding {month}/{year} opening balance of product {product.id} "
                        f"from {monthly.old_stock} to {opening}")
            monthly.old_stock = opening
            cls.recalculate_balances(monthly)
        return monthly

    @staticmethod
    def recalculate_balances(monthly):
        """Recompute every entry's running balance and the month totals"""
        entries = list(monthly.entries.all())
        result = ledger.recalculate(monthly.old_stock, entries)

        if result['changed']:
            StockEntry.objects.bulk_update(result['changed'], ['old_stock', 'balance'])

        dirty = bool(result['changed']) or monthly.pk is None
        for field in TOTAL_FIELDS:
            if getattr(monthly, field) != result[field]:
                setattr(monthly, field, result[field])
                dirty = True
        if dirty:
            monthly.save()
        return monthly

    @classmethod
    def propagate_carry_forward(cls, theater, product, from_year, from_month):
        """Re-seed every month after (from_year, from_month) from its predecessor's closing balance"""
        current = MonthlyStock.objects.filter(
            theater=theater, product=product, year=from_year, month_number=from_month
        ).first()
        if current is not None:
            running = current.closing_balance
        else:
            running = cls.get_previous_month_balance(theater, product, from_year, from_month)

        updated = 0
        later = (MonthlyStock.objects
                 .filter(theater=theater, product=product)
                 .filter(_after(from_year, from_month))
                 .order_by('year', 'month_number'))
        for monthly in later:
            if monthly.old_stock != running:
                logger.debug(f"Carry forward into {monthly.month_number}/{monthly.year}: "
                             f"{monthly.old_stock} -> {running}")
                monthly.old_stock = running
                cls.recalculate_balances(monthly)
                updated += 1
            running = monthly.closing_balance

        if updated:
            logger.info(f"Carried stock of product {product.id} forward into {updated} later month(s)")
        return updated

    @staticmethod
    def sync_current_stock(theater, product, today=None):
        """Mirror the closing balance of the latest month up to today onto the product"""
        today = today or timezone.localdate()
        latest = (MonthlyStock.objects
                  .filter(theater=theater, product=product)
                  .filter(_on_or_before(today.year, today.month))
                  .order_by('-year', '-month_number')
                  .only('closing_balance')
                  .first())
        current_stock = latest.closing_balance if latest else 0
        product.current_stock = current_stock
        product.save(update_fields=['current_stock', 'updated_at'])
        return current_stock

    @classmethod
    def _after_mutation(cls, theater, product, year, month):
        cls.propagate_carry_forward(theater, product, year, month)
        cls.sync_current_stock(theater, product)
        # Both run once the outer transaction has committed and released the batch locks
        transaction.on_commit(lambda: invalidate_stock_cache(theater.id))
        transaction.on_commit(lambda: check_low_stock_realtime(theater, product))

    @classmethod
    def _recalculate_months(cls, monthly_ids):
        """Recalculate the given months oldest first; returns the earliest period"""
        months = list(MonthlyStock.objects.filter(id__in=monthly_ids).order_by('year', 'month_number'))
        for monthly in months:
            cls.recalculate_balances(monthly)
        return months[0].period if months else None

    # ----- FIFO bookkeeping -----

    @classmethod
    def _allocate_fifo(cls, theater, product, quantity, sale_date):
        """
        Draw ``quantity`` units from the oldest usable batches.

        Units written off after ``sale_date`` still belonged to the batch on
        that day, so a back-dated sale takes them back from the write-off.
        Returns the allocation details and the ids of months whose write-offs shrank.
        """
        batches = (StockEntry.objects
                   .select_for_update()
                   .filter(monthly_stock__theater=theater,
                           monthly_stock__product=product,
                           entry_type__in=StockEntry.BATCH_TYPES,
                           date__lte=sale_date)
                   .filter(Q(expire_date__isnull=True) | Q(expire_date__gte=sale_date))
                   .order_by('date', 'id'))

        remaining = quantity
        details = []
        touched = set()
        for batch in batches:
            if remaining <= 0:
                break
            available = batch.remaining_stock
            # Write-offs are dated the day after expire_date, which is after sale_date here
            reclaimable = batch.written_off_stock
            if available + reclaimable <= 0:
                continue
            take = min(available + reclaimable, remaining)
            if take > available:
                touched |= cls._reclaim_write_offs(batch, take - available)
            batch.consumed_stock += take
            batch.save(update_fields=['consumed_stock', 'written_off_stock', 'updated_at'])
            details.append({
                'entry_id': batch.id,
                'date': batch.date.isoformat(),
                'batch_number': batch.batch_number,
                'deducted': take,
                'expire_date': batch.expire_date.isoformat() if batch.expire_date else None,
            })
            remaining -= take

        if remaining > 0:
            logger.warning(f"Insufficient batch stock for product {product.id} in theater {theater.id}: "
                           f"{remaining} of {quantity} units sold on {sale_date} not covered by any batch")
        return details, touched

    @staticmethod
    def _reclaim_write_offs(batch, units):
        """Shrink a batch's automatic EXPIRED entries by ``units``, newest first; returns the months touched"""
        touched = set()
        for write_off in batch.write_offs.select_for_update().order_by('-date', '-id'):
            if units <= 0:
                break
            take = min(units, write_off.quantity)
            touched.add(write_off.monthly_stock_id)
            if take == write_off.quantity:
                write_off.delete()
            else:
                write_off.quantity -= take
                for field, value in ledger.quantity_fields(StockEntry.TYPE_EXPIRED, write_off.quantity).items():
                    setattr(write_off, field, value)
                write_off.save()
            batch.written_off_stock -= take
            units -= take
        logger.info(f"Back-dated sale took units back from the write-offs of batch {batch.id}")
        return touched

    @staticmethod
    def _release_allocations(entry):
        """Give the units a SOLD entry drew back to their batches"""
        for detail in entry.fifo_details or []:
            batch = StockEntry.objects.select_for_update().filter(pk=detail.get('entry_id')).first()
            if batch is None:
                logger.debug(f"Batch {detail.get('entry_id')} of sale {entry.id} no longer exists")
                continue
            batch.consumed_stock = max(0, batch.consumed_stock - int(detail.get('deducted', 0)))
            batch.save(update_fields=['consumed_stock', 'updated_at'])
        entry.fifo_details = []

    @staticmethod
    def _remove_write_offs(batch):
        """Delete the automatic EXPIRED entries of a batch; returns the months they lived in"""
        touched = set()
        for write_off in batch.write_offs.all():
            touched.add(write_off.monthly_stock_id)
            write_off.delete()
        batch.written_off_stock = 0
        return touched

    @classmethod
    def _detach_entry(cls, entry):
        """Undo the bookkeeping an entry holds on other entries before it goes away"""
        touched = set()
        if entry.entry_type == StockEntry.TYPE_SOLD:
            cls._release_allocations(entry)
        if entry.is_auto_expiry:
            source = StockEntry.objects.select_for_update().filter(pk=entry.source_entry_id).first()
            if source is not None:
                source.written_off_stock = max(0, source.written_off_stock - entry.expired_stock)
                source.save(update_fields=['written_off_stock', 'updated_at'])
        if entry.is_batch:
            touched |= cls._remove_write_offs(entry)
        return touched

    @staticmethod
    def _get_entry(theater, product, entry_id):
        entry = (StockEntry.objects
                 .select_for_update()
                 .select_related('monthly_stock')
                 .filter(pk=entry_id, monthly_stock__theater=theater, monthly_stock__product=product)
                 .first())
        if entry is None:
            raise StockEntryNotFound(f'Stock entry {entry_id} not found')
        return entry

    # ----- ledger mutations -----

    @classmethod
    def add_entry(cls, theater, product, entry_date, entry_type, quantity, expire_date=None,
                  batch_number='', notes='', user=None, reference=''):
        """Append an entry to the month of ``entry_date``; SOLD entries are FIFO allocated"""
        validate_entry(entry_type, quantity, entry_date, expire_date)

        with transaction.atomic(), suspend_cache_signals():
            monthly = cls.get_or_create_monthly(theater, product, entry_date.year, entry_date.month)
            fifo_details, touched = [], {monthly.id}
            if entry_type == StockEntry.TYPE_SOLD:
                fifo_details, reclaimed = cls._allocate_fifo(theater, product, quantity, entry_date)
                touched |= reclaimed

            entry = StockEntry.objects.create(
                monthly_stock=monthly,
                date=entry_date,
                entry_type=entry_type,
                quantity=quantity,
                expire_date=expire_date,
                batch_number=batch_number or '',
                notes=notes or '',
                reference=reference or '',
                fifo_details=fifo_details,
                created_by=_actor(user),
                **ledger.quantity_fields(entry_type, quantity),
            )
            earliest = cls._recalculate_months(touched)
            cls._after_mutation(theater, product, *earliest)

        entry.refresh_from_db()
        logger.info(f"Added {entry_type} entry of {quantity} for product {product.id} "
                    f"in theater {theater.id} on {entry_date}")
        return entry

    @classmethod
    def update_entry(cls, theater, product, entry_id, changes, user=None):
        """
        Edit an entry. Moving the date into another month moves the entry to
        that month's document; both months and everything after are rebalanced.
        """
        with transaction.atomic(), suspend_cache_signals():
            entry = cls._get_entry(theater, product, entry_id)
            if entry.is_auto_expiry:
                raise InvalidStockEntry('Automatic expiry entries cannot be edited, delete them instead')

            new_date = changes.get('date', entry.date)
            new_type = changes.get('entry_type', entry.entry_type)
            new_quantity = changes.get('quantity', entry.quantity)
            new_expire = changes['expire_date'] if 'expire_date' in changes else entry.expire_date
            validate_entry(new_type, new_quantity, new_date, new_expire)

            touched = {entry.monthly_stock_id}
            rerun_expiry = False

            if entry.is_batch:
                used = entry.consumed_stock + entry.written_off_stock
                if new_type not in StockEntry.BATCH_TYPES and used:
                    raise InvalidStockEntry('Cannot change the type of a batch that has been sold from or expired')
                if new_type in StockEntry.BATCH_TYPES:
                    if entry.written_off_stock and (new_expire != entry.expire_date or new_date != entry.date):
                        touched |= cls._remove_write_offs(entry)
                        rerun_expiry = True
                    if new_quantity < entry.consumed_stock + entry.written_off_stock:
                        raise InvalidStockEntry(
                            f'Quantity cannot be lower than the {entry.consumed_stock + entry.written_off_stock} '
                            f'units already sold or expired from this batch'
                        )

            if entry.entry_type == StockEntry.TYPE_SOLD:
                cls._release_allocations(entry)

            if (new_date.year, new_date.month) != entry.monthly_stock.period:
                entry.monthly_stock = cls.get_or_create_monthly(theater, product, new_date.year, new_date.month)
                touched.add(entry.monthly_stock_id)

            entry.date = new_date
            entry.entry_type = new_type
            entry.quantity = new_quantity
            entry.expire_date = new_expire
            if 'batch_number' in changes:
                entry.batch_number = changes['batch_number'] or ''
            if 'notes' in changes:
                entry.notes = changes['notes'] or ''
            for field, value in ledger.quantity_fields(new_type, new_quantity).items():
                setattr(entry, field, value)
            if new_type == StockEntry.TYPE_SOLD:
                entry.fifo_details, reclaimed = cls._allocate_fifo(theater, product, new_quantity, new_date)
                touched |= reclaimed
            else:
                entry.fifo_details = []
            entry.save()

            earliest = cls._recalculate_months(touched)
            cls._after_mutation(theater, product, *earliest)
            if rerun_expiry:
                cls.auto_expire(theater, product, user=user)

        entry.refresh_from_db()
        logger.info(f"Updated stock entry {entry.id} of product {product.id} in theater {theater.id}")
        return entry

    @classmethod
    def delete_entry(cls, theater, product, entry_id, user=None):
        """Remove an entry and rebalance; returns a snapshot of what was deleted"""
        with transaction.atomic(), suspend_cache_signals():
            entry = cls._get_entry(theater, product, entry_id)
            touched = {entry.monthly_stock_id}
            touched |= cls._detach_entry(entry)
            snapshot = {
                'id': entry.id,
                'date': entry.date.isoformat(),
                'entry_type': entry.entry_type,
                'quantity': entry.quantity,
                'batch_number': entry.batch_number,
            }
            entry.delete()
            earliest = cls._recalculate_months(touched)
            cls._after_mutation(theater, product, *earliest)

        logger.info(f"Deleted stock entry {snapshot['id']} of product {product.id} in theater {theater.id}")
        return snapshot

    @classmethod
    def clear_month(cls, theater, product, year, month, user=None):
        """Delete every entry of one month; returns how many were removed"""
        year, month = validate_period(year, month)
        with transaction.atomic(), suspend_cache_signals():
            monthly = MonthlyStock.objects.filter(
                theater=theater, product=product, year=year, month_number=month
            ).first()
            if monthly is None:
                raise MonthlyStockNotFound(f'No stock ledger for {month}/{year}')

            entries = list(monthly.entries.select_for_update())
            touched = {monthly.id}
            for entry in entries:
                touched |= cls._detach_entry(entry)
            monthly.entries.all().delete()

            earliest = cls._recalculate_months(touched)
            cls._after_mutation(theater, product, *earliest)

        logger.info(f"Cleared {len(entries)} entries of product {product.id} for {month}/{year}")
        return len(entries)

    @classmethod
    def record_sale(cls, theater, product, quantity, sale_date=None, reference='', user=None, notes=''):
        """SOLD entry drawn FIFO from the product's batches"""
        sale_date = sale_date or timezone.localdate()
        return cls.add_entry(
            theater, product, sale_date, StockEntry.TYPE_SOLD, quantity,
            notes=notes or (f'Order {reference}' if reference else ''),
            reference=reference, user=user,
        )

    @classmethod
    def record_return(cls, theater, product, quantity, return_date=None, reference='', user=None, notes=''):
        """RETURNED entry; the returned units form a new batch"""
        return_date = return_date or timezone.localdate()
        return cls.add_entry(
            theater, product, return_date, StockEntry.TYPE_RETURNED, quantity,
            notes=notes or (f'Returned from order {reference}' if reference else ''),
            reference=reference, user=user,
        )

    @classmethod
    def auto_expire(cls, theater, product, today=None, user=None):
        """
        Write off what is left of every batch whose expire date has passed.

        A batch expiring on D is usable through D; its write-off is dated D + 1.
        Running it again finds nothing left to write off.
        """
        today = today or timezone.localdate()
        created = []

        with transaction.atomic(), suspend_cache_signals():
            batches = (StockEntry.objects
                       .select_for_update()
                       .filter(monthly_stock__theater=theater,
                               monthly_stock__product=product,
                               entry_type__in=StockEntry.BATCH_TYPES,
                               expire_date__lt=today)
                       .order_by('expire_date', 'id'))

            touched = set()
            for batch in batches:
                remaining = batch.remaining_stock
                if remaining <= 0:
                    continue
                expiry_day = batch.expire_date + timedelta(days=1)
                monthly = cls.get_or_create_monthly(theater, product, expiry_day.year, expiry_day.month)
                write_off = StockEntry.objects.create(
                    monthly_stock=monthly,
                    date=expiry_day,
                    entry_type=StockEntry.TYPE_EXPIRED,
                    quantity=remaining,
                    batch_number=batch.batch_number,
                    notes=f'Auto-expired: batch {batch.batch_number or batch.id} expired on {batch.expire_date.isoformat()}',
                    source_entry=batch,
                    created_by=_actor(user),
                    **ledger.quantity_fields(StockEntry.TYPE_EXPIRED, remaining),
                )
                batch.written_off_stock += remaining
                batch.save(update_fields=['written_off_stock', 'updated_at'])
                touched.add(monthly.id)
                created.append(write_off)

            if created:
                earliest = cls._recalculate_months(touched)
                cls._after_mutation(theater, product, *earliest)

        if created:
            logger.info(f"Auto-expired {sum(e.quantity for e in created)} units in {len(created)} batch(es) "
                        f"of product {product.id} in theater {theater.id}")
        return created

    @classmethod
    def rebuild(cls, theater, product):
        """
        Recalculate every month of a product oldest first, re-seeding each
        opening balance from the month before. Returns the number of months
        whose stored figures were wrong.
        """
        fixed = 0
        with transaction.atomic(), suspend_cache_signals():
            running = 0
            months = (MonthlyStock.objects
                      .select_for_update()
                      .filter(theater=theater, product=product)
                      .order_by('year', 'month_number'))
            for monthly in months:
                before = (monthly.old_stock, *(getattr(monthly, field) for field in TOTAL_FIELDS))
                monthly.old_stock = running
                cls.recalculate_balances(monthly)
                after = (monthly.old_stock, *(getattr(monthly, field) for field in TOTAL_FIELDS))
                if before != after:
                    fixed += 1
                    logger.warning(f"Rebuilt {monthly.month_number}/{monthly.year} ledger of product {product.id}: "
                                   f"{before} -> {after}")
                running = monthly.closing_balance
            cls.sync_current_stock(theater, product)
            transaction.on_commit(lambda: invalidate_stock_cache(theater.id))
        return fixed

    # ----- reads -----

    @staticmethod
    def statistics(monthly):
        return {
            'opening_balance': max(0, monthly.old_stock),
            'total_added': monthly.total_invord_stock,
            'total_sold': monthly.total_sales,
            'total_expired': monthly.total_expired_stock,
            'total_damaged': monthly.total_damage_stock,
            'closing_balance': max(0, monthly.closing_balance),
        }

    @classmethod
    def get_monthly_stock(cls, theater, product, year=None, month=None, today=None):
        """
        Monthly view of one product: expires due batches first, then returns the
        month (unsaved when nobody touched it yet), its entries up to today and statistics.
        """
        today = today or timezone.localdate()
        year, month = validate_period(year or today.year, month or today.month)
        cls.auto_expire(theater, product, today=today)

        monthly = MonthlyStock.objects.filter(
            theater=theater, product=product, year=year, month_number=month
        ).first()
        if monthly is None:
            opening = cls.get_previous_month_balance(theater, product, year, month)
            monthly = MonthlyStock(theater=theater, product=product, year=year, month_number=month,
                                   old_stock=opening, closing_balance=opening)
            entries = []
        else:
            entries = [entry for entry in monthly.entries.all() if entry.date <= today]

        return {
            'monthly': monthly,
            'entries': entries,
            'statistics': cls.statistics(monthly),
        }

    @classmethod
    def theater_overview(cls, theater, year=None, month=None, today=None):
        """Per product month totals for a theater, cached until the next ledger change"""
        today = today or timezone.localdate()
        year, month = validate_period(year or today.year, month or today.month)

        cached, cache_key = get_cached_stock_overview(theater.id, year, month)
        if cached is not None:
            return cached

        monthlies = {
            monthly.product_id: monthly
            for monthly in MonthlyStock.objects.filter(theater=theater, year=year, month_number=month)
        }

        next_expiry = {}
        upcoming = (StockEntry.objects
                    .filter(monthly_stock__theater=theater,
                            entry_type__in=StockEntry.BATCH_TYPES,
                            expire_date__gte=today)
                    .select_related('monthly_stock')
                    .order_by('expire_date'))
        for batch in upcoming:
            product_id = batch.monthly_stock.product_id
            if product_id not in next_expiry and batch.remaining_stock > 0:
                next_expiry[product_id] = batch.expire_date.isoformat()

        rows = []
        products = Product.objects.filter(theater=theater, track_stock=True).select_related('category').order_by('name')
        for product in products:
            monthly = monthlies.get(product.id)
            if monthly is None:
                opening = cls.get_previous_month_balance(theater, product, year, month)
                monthly = MonthlyStock(old_stock=opening, closing_balance=opening)
            closing = max(0, monthly.closing_balance)
            if closing <= 0:
                stock_status = 'Out of Stock'
            elif closing <= product.low_stock_threshold:
                stock_status = 'Low Stock'
            else:
                stock_status = 'In Stock'
            rows.append({
                'product_id': product.id,
                'product_name': product.name,
                'sku': product.sku,
                'category': product.category.name if product.category else None,
                'old_stock': max(0, monthly.old_stock),
                'invord_stock': monthly.total_invord_stock,
                'sales': monthly.total_sales,
                'damage_stock': monthly.total_damage_stock,
                'expired_stock': monthly.total_expired_stock,
                'closing_balance': closing,
                'current_stock': product.current_stock,
                'min_stock': product.low_stock_threshold,
                'next_expire_date': next_expiry.get(product.id),
                'status': stock_status,
            })

        data = {
            'theater': {'id': theater.id, 'name': theater.name},
            'period': {'year': year, 'month': month, 'month_name': calendar.month_name[month]},
            'products': rows,
            'summary': {
                'product_count': len(rows),
                'total_invord_stock': sum(row['invord_stock'] for row in rows),
                'total_sales': sum(row['sales'] for row in rows),
                'total_damage_stock': sum(row['damage_stock'] for row in rows),
                'total_expired_stock': sum(row['expired_stock'] for row in rows),
                'total_closing_balance': sum(row['closing_balance'] for row in rows),
                'low_stock_count': sum(1 for row in rows if row['status'] == 'Low Stock'),
                'out_of_stock_count': sum(1 for row in rows if row['status'] == 'Out of Stock'),
            },
        }
        cache_stock_overview(theater.id, cache_key, data)
        return data
