"""
Scheduled stock jobs.

Every job walks the active theaters one at a time. A failure in one theater is
logged and counted; the remaining theaters are still processed.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import F, Sum
from django.utils import timezone

from backend.catalog.models import Product
from backend.inventory.low_stock import claim_low_stock_notification, is_low_stock
from backend.inventory.models import StockEntry
from backend.inventory.services import StockService
from backend.orders.models import Order, OrderItem
from backend.theaters.models import Theater
from .emails import send_daily_sales_report, send_expiration_warning, send_low_stock_alert

logger = logging.getLogger(__name__)


def _stats():
    return {'theaters': 0, 'emails_sent': 0, 'errors': 0}


def _batches_with_stock(theater):
    return StockEntry.objects.filter(
        monthly_stock__theater=theater,
        entry_type__in=StockEntry.BATCH_TYPES,
        expire_date__isnull=False,
        invord_stock__gt=F('consumed_stock') + F('written_off_stock'),
    )


def expiring_batches(theater, today, days):
    """Batches with units left that expire within the next ``days`` days (today included)"""
    batches = (_batches_with_stock(theater)
               .filter(expire_date__gte=today, expire_date__lte=today + timedelta(days=days))
               .select_related('monthly_stock__product')
               .order_by('expire_date', 'id'))
    return [
        {
            'product_name': batch.monthly_stock.product.name,
            'batch_number': batch.batch_number,
            'expire_date': batch.expire_date,
            'days_left': (batch.expire_date - today).days,
            'remaining': batch.remaining_stock,
        }
        for batch in batches
    ]


def check_expiring_stock(today=None, days=None):
    """Warn every theater about batches about to expire"""
    today = today or timezone.localdate()
    days = days if days is not None else settings.STOCK_EXPIRY_WARNING_DAYS
    stats = _stats()

    for theater in Theater.objects.filter(is_active=True):
        stats['theaters'] += 1
        try:
            batches = expiring_batches(theater, today, days)
            if batches and send_expiration_warning(theater, batches, days=days):
                stats['emails_sent'] += 1
        except Exception as e:
            stats['errors'] += 1
            logger.error(f"Expiring stock check failed for theater {theater.id}: {e}", exc_info=True)

    logger.info(f"Expiring stock check done: {stats}")
    return stats


def check_low_stock():
    """Alert theaters about products at or below their minimum stock"""
    stats = _stats()

    for theater in Theater.objects.filter(is_active=True):
        stats['theaters'] += 1
        try:
            candidates = Product.objects.filter(theater=theater, is_active=True, track_stock=True,
                                                current_stock__gt=0).order_by('name')
            products = [
                product for product in candidates
                if is_low_stock(product) and claim_low_stock_notification(theater.id, product.id)
            ]
            if products and send_low_stock_alert(theater, products):
                stats['emails_sent'] += 1
        except Exception as e:
            stats['errors'] += 1
            logger.error(f"Low stock check failed for theater {theater.id}: {e}", exc_info=True)

    logger.info(f"Low stock check done: {stats}")
    return stats


def expire_stock(today=None):
    """Write off every batch whose expire date has passed"""
    today = today or timezone.localdate()
    stats = {'theaters': 0, 'products': 0, 'entries_created': 0, 'errors': 0}

    for theater in Theater.objects.filter(is_active=True):
        stats['theaters'] += 1
        try:
            product_ids = (_batches_with_stock(theater)
                           .filter(expire_date__lt=today)
                           .values_list('monthly_stock__product_id', flat=True)
                           .distinct())
            for product in Product.objects.filter(id__in=list(product_ids)):
                created = StockService.auto_expire(theater, product, today=today)
                if created:
                    stats['products'] += 1
                    stats['entries_created'] += len(created)
        except Exception as e:
            stats['errors'] += 1
            logger.error(f"Stock expiry failed for theater {theater.id}: {e}", exc_info=True)

    logger.info(f"Stock expiry done: {stats}")
    return stats


def daily_sales(theater, report_date):
    """Per product sales rows and a summary of the theater's non-cancelled orders of the day"""
    orders = Order.objects.filter(theater=theater, created_at__date=report_date) \
        .exclude(status=Order.STATUS_CANCELLED)
    rows = list(
        OrderItem.objects.filter(order__in=orders)
        .values('product_name')
        .annotate(quantity=Sum('quantity'), revenue=Sum('line_total'))
        .order_by('-quantity', 'product_name')
    )
    summary = {
        'order_count': orders.count(),
        'items_sold': sum(row['quantity'] for row in rows),
        'total_revenue': orders.aggregate(total=Sum('total'))['total'] or Decimal('0.00'),
    }
    return rows, summary


def send_daily_sales_reports(report_date=None):
    """Email each theater that took orders on the day its sales report"""
    report_date = report_date or timezone.localdate()
    stats = _stats()

    for theater in Theater.objects.filter(is_active=True):
        stats['theaters'] += 1
        try:
            rows, summary = daily_sales(theater, report_date)
            if summary['order_count'] == 0:
                logger.debug(f"No orders for theater {theater.id} on {report_date}, skipping report")
                continue
            if send_daily_sales_report(theater, report_date, rows, summary):
                stats['emails_sent'] += 1
        except Exception as e:
            stats['errors'] += 1
            logger.error(f"Daily sales report failed for theater {theater.id}: {e}", exc_info=True)

    logger.info(f"Daily sales reports done: {stats}")
    return stats
