"""
Caching utilities for expensive stock queries
Uses Redis (django-redis) when configured, Django's local-memory cache otherwise
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
STOCK_OVERVIEW_CACHE_TTL = 180  # 3 minutes

STOCK_OVERVIEW_PREFIX = "stock_overview"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def theater_cache_prefix(prefix, theater_id):
    return f"{prefix}:t{theater_id}"


def get_cached_stock_overview(theater_id, year, month):
    """
    Get cached month overview for a theater
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(theater_cache_prefix(STOCK_OVERVIEW_PREFIX, theater_id), year, month)
    return cache.get(cache_key), cache_key


def cache_stock_overview(theater_id, cache_key, data, ttl=STOCK_OVERVIEW_CACHE_TTL):
    """Cache a theater's month overview and remember the key for invalidation"""
    cache.set(cache_key, data, ttl)
    index_key = f"{theater_cache_prefix(STOCK_OVERVIEW_PREFIX, theater_id)}:keys"
    keys = cache.get(index_key) or []
    if cache_key not in keys:
        keys.append(cache_key)
        cache.set(index_key, keys, ttl)
    logger.debug(f"Cached stock overview: {cache_key}")


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Note: This requires Redis with SCAN command support
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.debug(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_stock_cache(theater_id):
    """Invalidate every cached stock overview of a theater"""
    prefix = theater_cache_prefix(STOCK_OVERVIEW_PREFIX, theater_id)
    index_key = f"{prefix}:keys"
    keys = cache.get(index_key) or []
    if keys:
        cache.delete_many(keys)
    cache.delete(index_key)
    invalidate_cache_pattern(f"{prefix}:")
    logger.debug(f"Invalidated stock cache for theater {theater_id}")
