"""
Per-rule serialization for allowlist writes.

Two members of the same organization share one rule identifier; holding
rule_lock(rule_id) around the firewall call and the store write keeps their
updates from interleaving. Redis lock when Redis is available (shared across
workers), else an in-process lock per key (not shared across processes).
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import redis
from redis.exceptions import LockError, RedisError

from app.core.dbdirect.errors import RuleLockTimeoutError
from app.core.redis_client import get_redis

_LOG = logging.getLogger(__name__)

_LOCK_KEY_PREFIX = "dbdirect:rule:"
# Redis lock TTL so a crashed worker does not hold the rule forever.
_LOCK_TTL_SECONDS = 120


class _MemoryLockEntry:
    """In-process lock plus the number of callers holding or waiting for it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


# Entries are dropped once no caller holds or waits for them.
_memory_locks: dict[str, _MemoryLockEntry] = {}
_memory_locks_guard = threading.Lock()


@contextmanager
def _memory_lock_entry(rule_id: str) -> Iterator[_MemoryLockEntry]:
    with _memory_locks_guard:
        entry = _memory_locks.get(rule_id)
        if entry is None:
            entry = _MemoryLockEntry()
            _memory_locks[rule_id] = entry
        entry.users += 1
    try:
        yield entry
    finally:
        with _memory_locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del _memory_locks[rule_id]


@contextmanager
def _redis_rule_lock(
    r: redis.Redis, rule_id: str, timeout: float | None
) -> Iterator[None]:
    lock = r.lock(
        _LOCK_KEY_PREFIX + rule_id,
        timeout=_LOCK_TTL_SECONDS,
        blocking_timeout=timeout,
    )
    if not lock.acquire():
        raise RuleLockTimeoutError(
            f"Another update of rule '{rule_id}' is in progress; try again later"
        )
    _LOG.debug("[dbdirect] redis lock acquired rule_id=%s", rule_id)
    try:
        yield
    finally:
        try:
            lock.release()
        except (LockError, RedisError) as e:
            # Expired or connection dropped; the TTL frees it anyway.
            _LOG.warning("[dbdirect] redis lock release failed rule_id=%s: %s", rule_id, e)


@contextmanager
def _memory_rule_lock(rule_id: str, timeout: float) -> Iterator[None]:
    with _memory_lock_entry(rule_id) as entry:
        if not entry.lock.acquire(timeout=timeout if timeout > 0 else -1):
            raise RuleLockTimeoutError(
                f"Another update of rule '{rule_id}' is in progress; try again later"
            )
        _LOG.debug("[dbdirect] memory lock acquired rule_id=%s", rule_id)
        try:
            yield
        finally:
            entry.lock.release()


@contextmanager
def rule_lock(rule_id: str, *, timeout: float = 30.0) -> Iterator[None]:
    """
    Hold the write lock for `rule_id`. Raises RuleLockTimeoutError when it
    cannot be acquired within `timeout` seconds (<= 0: wait indefinitely).
    """
    r = get_redis()
    cm = (
        _redis_rule_lock(r, rule_id, timeout if timeout > 0 else None)
        if r is not None
        else _memory_rule_lock(rule_id, timeout)
    )
    with cm:
        yield
