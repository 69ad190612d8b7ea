"""Redis caching helpers.

Caches read-heavy admin queries (the submission stats panel) across
backend instances. Every helper degrades to "no cache" when Redis is
unreachable; caching never decides whether a request succeeds.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from asset_intake.config import settings

logger = logging.getLogger(__name__)

# Shared client, created lazily
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


async def close_redis():
    """Close the client (called on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def cache_key(**kwargs) -> str:
    """Deterministic hash of the keyword arguments, "default" when empty."""
    if not kwargs:
        return "default"
    key_data = json.dumps(kwargs, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def _plain_kwargs(kwargs: dict) -> dict:
    # Injected dependencies (sessions, users) never take part in the key
    plain = {}
    for k, v in kwargs.items():
        if k.startswith("_"):
            continue
        if isinstance(v, (int, str, bool, float, type(None))):
            plain[k] = v
        elif isinstance(v, (date, datetime)):
            plain[k] = v.isoformat()
    return plain


def _serialize(result):
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    if isinstance(result, list) and result and hasattr(result[0], "model_dump"):
        return [item.model_dump(mode="json") for item in result]
    return result


def cached(ttl: int = 300, prefix: str = "cache"):
    """Cache an async function's JSON-able result in Redis.

    Keys look like {prefix}:{function_name}:{kwargs_hash}; positional
    arguments are assumed to be injected dependencies and are ignored.

    Example:
        @cached(ttl=120, prefix="submissions")
        async def submission_stats(db: AsyncSession) -> dict: ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            key = f"{prefix}:{func.__name__}:{cache_key(**_plain_kwargs(kwargs))}"
            try:
                client = await get_redis()
                hit = await client.get(key)
                if hit:
                    logger.debug(f"Cache HIT: {key}")
                    return json.loads(hit)
                logger.debug(f"Cache MISS: {key}")
            except redis.RedisError as e:
                logger.warning(f"Redis error (falling back to uncached): {e}")
                return await func(*args, **kwargs)

            result = await func(*args, **kwargs)
            try:
                await client.setex(key, ttl, json.dumps(_serialize(result)))
            except redis.RedisError as e:
                logger.warning(f"Failed to store {key} in cache: {e}")
            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Delete every key matching a pattern, e.g. "submissions:*"."""
    try:
        client = await get_redis()
        keys = [key async for key in client.scan_iter(match=pattern)]
        if keys:
            await client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching {pattern}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate cache: {e}")
