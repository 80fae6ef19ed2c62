"""Redis caching utilities for RiceWeigh.

Provides a decorator and helpers for caching read-heavy queries (the
completed-transaction list, statistics).  Redis is a cache only: any
Redis failure is logged and the call falls through to the database.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )
    return _redis_client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cache_key(*args, **kwargs) -> str:
    """Generate a deterministic key hash from call arguments."""
    if not args and not kwargs:
        return "default"

    key_data = json.dumps({"args": args, "kwargs": kwargs}, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def _cacheable_kwargs(kwargs: dict) -> dict:
    """Keep simple values; drop injected dependencies (sessions, stores)."""
    out = {}
    for k, v in kwargs.items():
        if k.startswith("_"):
            continue
        if isinstance(v, (int, str, bool, float, type(None))):
            out[k] = v
        elif isinstance(v, (date, datetime)):
            out[k] = v.isoformat()
    return out


def _serialize(result):
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    if isinstance(result, list) and result and hasattr(result[0], "model_dump"):
        return [item.model_dump(mode="json") for item in result]
    return result


def cached(ttl: int | None = None, prefix: str = "cache"):
    """Decorator to cache an async function's JSON-able result in Redis.

    Cache keys: {prefix}:{function_name}:{kwargs_hash}

    Example:
        @cached(prefix="riceweigh_transactions")
        async def recent_transactions(limit: int = 10, _db=None): ...

    Positional args are never part of the key (they are usually
    injected dependencies), so cached functions take their filters as
    keyword arguments.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not settings.cache_enabled:
                return await func(*args, **kwargs)

            key = f"{prefix}:{func.__name__}:{cache_key(**_cacheable_kwargs(kwargs))}"

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
                if cached_value:
                    logger.debug(f"Cache HIT: {key}")
                    return json.loads(cached_value)
            except redis.RedisError as e:
                logger.warning(f"Redis error (falling back to uncached): {e}")
                return await func(*args, **kwargs)

            logger.debug(f"Cache MISS: {key}")
            result = await func(*args, **kwargs)

            try:
                await redis_client.setex(
                    key,
                    ttl or settings.cache_ttl_seconds,
                    json.dumps(_serialize(result)),
                )
            except redis.RedisError as e:
                logger.warning(f"Redis error while storing {key}: {e}")

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Delete cache keys matching a pattern (e.g. "riceweigh_transactions:*")."""
    if not settings.cache_enabled:
        return

    try:
        redis_client = await get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=pattern):
            keys.append(key)

        if keys:
            await redis_client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching {pattern}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate cache: {e}")


async def invalidate_transaction_views():
    """Drop every cached read that includes transaction totals."""
    await invalidate_cache("riceweigh_transactions:*")
    await invalidate_cache("statistics:*")
