"""
Cache invalidation signals
Automatically invalidate the stock overview cache when ledger or product data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_stock_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk ledger rewrites that would otherwise clear the cache per row.
    Remember to manually invalidate cache after the block!
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _theater_id_for(instance):
    model_name = type(instance).__name__
    if model_name in ('Product', 'MonthlyStock'):
        return instance.theater_id
    if model_name == 'StockEntry':
        monthly = getattr(instance, 'monthly_stock', None)
        return monthly.theater_id if monthly is not None else None
    return None


@receiver([post_save, post_delete])
def invalidate_stock_overview_cache(sender, instance, **kwargs):
    """Invalidate a theater's stock overview when its products or ledger rows change"""
    if is_suspended():
        return

    if sender.__name__ not in ('Product', 'MonthlyStock', 'StockEntry'):
        return

    try:
        theater_id = _theater_id_for(instance)
    except Exception as e:
        logger.warning(f"Error resolving theater for cache invalidation: {e}")
        return

    if theater_id is None:
        return

    # Invalidate after commit so the cache is not refilled with pre-commit data
    transaction.on_commit(lambda: invalidate_stock_cache(theater_id))
