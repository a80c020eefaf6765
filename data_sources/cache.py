"""
Caching for upstream responses
Every outbound request is served from a time-bounded freshness window (24h by default),
backed by Redis when REDIS_URL is set, otherwise by an in-process dictionary.
"""

import time
import hashlib
import json
from typing import Any, Optional, Dict
from functools import wraps

import redis.asyncio as aioredis

from data_sources.settings import get_settings
from logging_config import get_logger

logger = get_logger(__name__)

_redis_client: Optional[aioredis.Redis] = None
_redis_checked = False

# In-memory cache (used when Redis is not configured or unreachable)
_cache: Dict[str, Any] = {}
_cache_ttl: Dict[str, float] = {}

# Upstream open data changes daily at most
CACHE_TTL = {
    'upstream': get_settings().cache_ttl,
}

# Expired in-memory entries are swept at most this often
CLEANUP_INTERVAL_SECONDS = 300
_last_cleanup = 0.0


async def _get_redis_client() -> Optional[aioredis.Redis]:
    """
    Get the Redis client, connecting on first use.

    Returns:
        Redis client if REDIS_URL is set and reachable, None otherwise
    """
    global _redis_client, _redis_checked

    if _redis_checked:
        return _redis_client
    _redis_checked = True

    redis_url = get_settings().redis_url
    if not redis_url:
        return None

    try:
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1
        )
        await client.ping()
        _redis_client = client
        logger.info("Redis connected for distributed caching")
    except Exception as e:
        logger.warning(f"Redis not available, using in-memory cache: {e}")
        _redis_client = None
    return _redis_client


def _generate_cache_key(func_name: str, *args, **kwargs) -> str:
    """Generate a cache key from function name and arguments."""
    args_str = json.dumps([args, sorted(kwargs.items())], sort_keys=True, default=str)
    key_hash = hashlib.md5(args_str.encode()).hexdigest()
    return f"{func_name}:{key_hash}"


def cached(ttl_seconds: int = 3600):
    """
    Decorator to cache coroutine results in Redis (if available) or in memory.

    Only results that come back without raising and are not None are stored,
    so a failed upstream call is fetched again on the next request.

    Args:
        ttl_seconds: Freshness window for cached results in seconds
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            cache_key = _generate_cache_key(func.__name__, *args, **kwargs)
            current_time = time.time()

            redis_client = await _get_redis_client()
            if redis_client:
                try:
                    cached_data = await redis_client.get(cache_key)
                    if cached_data:
                        logger.debug(f"Cache hit for {func.__name__} (redis)")
                        return json.loads(cached_data)['value']
                except Exception as e:
                    logger.warning(f"Redis read error, falling back to in-memory: {e}")

            if cache_key in _cache and (current_time - _cache_ttl.get(cache_key, 0)) < ttl_seconds:
                logger.debug(f"Cache hit for {func.__name__}")
                return _cache[cache_key]

            logger.debug(f"Cache miss for {func.__name__} - executing")
            if current_time - _last_cleanup >= CLEANUP_INTERVAL_SECONDS:
                cleanup_expired_cache()

            result = await func(*args, **kwargs)

            if result is not None and ttl_seconds > 0:
                if redis_client:
                    try:
                        await redis_client.setex(
                            cache_key, ttl_seconds,
                            json.dumps({'value': result, 'timestamp': current_time})
                        )
                    except Exception as e:
                        logger.warning(f"Redis write error: {e}")

                _cache[cache_key] = result
                _cache_ttl[cache_key] = current_time

            return result

        return wrapper
    return decorator


async def clear_cache(cache_type: Optional[str] = None):
    """
    Clear cache entries from Redis (if available) and the in-memory cache.

    Args:
        cache_type: If provided, only clear entries whose key starts with this prefix
    """
    redis_client = await _get_redis_client()
    if redis_client:
        try:
            pattern = "*" if cache_type is None else f"{cache_type}:*"
            keys = await redis_client.keys(pattern)
            if keys:
                await redis_client.delete(*keys)
        except Exception as e:
            logger.warning(f"Error clearing Redis cache: {e}")

    if cache_type is None:
        _cache.clear()
        _cache_ttl.clear()
        logger.info("Cleared all cache")
    else:
        keys_to_remove = [key for key in _cache.keys() if key.startswith(f"{cache_type}:")]
        for key in keys_to_remove:
            _cache.pop(key, None)
            _cache_ttl.pop(key, None)
        logger.info(f"Cleared {len(keys_to_remove)} {cache_type} cache entries")


def cleanup_expired_cache():
    """Remove in-memory entries older than the longest freshness window."""
    global _last_cleanup
    current_time = time.time()
    _last_cleanup = current_time
    max_ttl = max(CACHE_TTL.values())

    expired_keys = [key for key, cache_time in _cache_ttl.items() if current_time - cache_time >= max_ttl]
    for key in expired_keys:
        _cache.pop(key, None)
        _cache_ttl.pop(key, None)

    if expired_keys:
        logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")


async def get_cache_stats() -> Dict[str, Any]:
    """Get cache statistics from Redis (if available) and the in-memory cache."""
    cleanup_expired_cache()

    redis_client = await _get_redis_client()
    stats = {
        "total_entries": len(_cache),
        "ttl_seconds": CACHE_TTL,
        "cache_size_mb": round(sum(len(str(v)) for v in _cache.values()) / (1024 * 1024), 3),
        "redis_available": redis_client is not None
    }

    if redis_client:
        try:
            stats["redis_keys"] = await redis_client.dbsize()
        except Exception as e:
            stats["redis_error"] = str(e)

    return stats
