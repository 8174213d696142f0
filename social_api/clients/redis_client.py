"""
Redis client wrapper.

Responsibilities:
  • View versions   — STRING counter keyed by view-version:{path}
                       bumped every time a mutation makes the view stale
  • Stale-view feed — PUB/SUB channel (settings.redis_invalidation_channel)
                       carrying a JSON list of the stale view paths

Redis is optional: when REDIS_URL is unset the API still runs and the
invalidation signal only travels in the X-Stale-Views response header.
"""
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from social_api.config import settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None

VERSION_KEY = "view-version:{path}"


async def init_redis() -> None:
    global _redis
    if not settings.redis_url:
        logger.info("REDIS_URL not set — view invalidation stays header-only")
        return
    _redis = aioredis.Redis.from_url(settings.redis_url, decode_responses=True)
    await _redis.ping()
    logger.info("Redis connected at %s", settings.redis_url)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> Optional[aioredis.Redis]:
    return _redis


def set_redis(client: Optional[aioredis.Redis]) -> None:
    """Swap the shared client (used by tests and embedding applications)."""
    global _redis
    _redis = client


async def publish_stale_views(paths: list[str]) -> None:
    """
    Bump the version counter of every stale view and announce the batch.

    Failures are logged and swallowed: the mutation already committed and the
    header still carries the signal.
    """
    r = get_redis()
    if r is None or not paths:
        return
    try:
        pipe = r.pipeline()
        for path in paths:
            pipe.incr(VERSION_KEY.format(path=path))
        pipe.publish(settings.redis_invalidation_channel, json.dumps(paths))
        await pipe.execute()
    except aioredis.RedisError as exc:
        logger.warning("Failed to publish stale views %s: %s", paths, exc)
        return
    logger.debug("Published stale views: %s", paths)


async def get_view_versions(paths: list[str]) -> dict[str, int]:
    r = get_redis()
    if r is None or not paths:
        return {path: 0 for path in paths}
    raw = await r.mget([VERSION_KEY.format(path=p) for p in paths])
    return {path: int(v or 0) for path, v in zip(paths, raw)}
