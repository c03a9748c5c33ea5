"""Real-time low stock alerts raised right after a ledger change"""
import logging

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)


def low_stock_cache_key(theater_id, product_id):
    return f"low_stock_notified:t{theater_id}:p{product_id}"


def is_low_stock(product):
    return product.track_stock and 0 < product.current_stock <= product.low_stock_threshold


def claim_low_stock_notification(theater_id, product_id):
    """True when no alert for the product went out within the throttle window"""
    return cache.add(
        low_stock_cache_key(theater_id, product_id),
        timezone.now().isoformat(),
        settings.LOW_STOCK_NOTIFY_THROTTLE_SECONDS,
    )


def check_low_stock_realtime(theater, product):
    """Email the theater when the product just dropped to its low stock threshold"""
    from backend.notifications.emails import send_low_stock_alert

    if not is_low_stock(product):
        return False
    if not claim_low_stock_notification(theater.id, product.id):
        logger.debug(f"Low stock alert for product {product.id} throttled")
        return False
    try:
        return send_low_stock_alert(theater, [product])
    except Exception as e:
        # A failed alert must not roll back the stock change that triggered it
        logger.error(f"Real-time low stock alert failed for product {product.id}: {e}", exc_info=True)
        return False
