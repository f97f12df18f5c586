"""
Shared Redis client for per-rule locks.

All Redis connections go through this module so there is exactly one
client per process. Returns None when Redis is disabled or unreachable;
callers fall back to in-process primitives.
"""

import logging
import threading

import redis

from app.core.config import settings

_LOG = logging.getLogger(__name__)

_lock = threading.Lock()
_client: "redis.Redis | None" = None
_tried = False


def get_redis() -> "redis.Redis | None":
    """Return the shared Redis client, or None when ``CACHE_ENABLED`` is
    ``False`` or the initial ping fails. The outcome of the first attempt is
    remembered for the lifetime of the process."""
    global _client, _tried
    if _tried:
        return _client
    with _lock:
        if _tried:
            return _client
        _tried = True
        _client = _create_client()
        return _client


def _create_client() -> "redis.Redis | None":
    if not settings.CACHE_ENABLED:
        return None
    try:
        r = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        r.ping()
        return r
    except redis.RedisError as e:
        _LOG.warning("Redis unavailable, using in-process locks: %s", e)
        return None
