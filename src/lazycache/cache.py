"""In-process key-value cache with pluggable expiration policies.

Example:
    >>> from lazycache import Cache, TimeoutExpirationPolicy
    >>> cache = Cache()
    >>> cache.put("answer", 42)
    >>> cache.get("answer")
    42
    >>> cache.get_or_compute("total", lambda: 1 + 2, TimeoutExpirationPolicy(60))
    3
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, Type, TypeVar

from lazycache.config import get_settings
from lazycache.exceptions import CacheTypeMismatchError
from lazycache.policy import ExpirationPolicy, TimeoutExpirationPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()


@dataclass(frozen=True)
class CacheEntry:
    """A stored value together with the policy that decides its staleness."""

    value: Any
    policy: ExpirationPolicy


@dataclass
class _KeyLock:
    """Producer lock for one key and the number of callers using it."""

    lock: Any = field(default_factory=threading.RLock)
    users: int = 0


class Cache:
    """Mapping from string keys to values guarded by expiration policies.

    Expiration is lazy: a stale entry stays in memory until a read discovers
    it (and evicts it), it is removed, or :meth:`purge_expired` is called.
    ``None`` is an ordinary value; use the ``default`` of :meth:`get` or
    :meth:`contains` to tell a stored ``None`` apart from a missing key.

    Thread-safe for single-process use. The entry table is guarded by one
    lock, and :meth:`get_or_compute` additionally serializes per key so at
    most one producer runs for a key at a time (see
    ``Settings.SERIALIZE_PRODUCERS``). Policies are evaluated outside the
    table lock because some of them read and write this cache.
    """

    def __init__(self, serialize_producers: Optional[bool] = None) -> None:
        """
        Initialize an empty cache.

        Args:
            serialize_producers: Override ``Settings.SERIALIZE_PRODUCERS``.
        """
        if serialize_producers is None:
            serialize_producers = get_settings().SERIALIZE_PRODUCERS
        self.serialize_producers = serialize_producers
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # Per-key producer locks, guarded by _locks_lock
        self._key_locks: Dict[str, _KeyLock] = {}
        self._locks_lock = threading.Lock()

    def put(self, key: str, value: Any, policy: Optional[ExpirationPolicy] = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry.

        Args:
            key: Globally unique key used to retrieve the value later.
            value: Any object, including ``None``.
            policy: Expiration policy for the entry. Defaults to a new
                :class:`TimeoutExpirationPolicy` with the configured timeout.
        """
        if policy is None:
            policy = TimeoutExpirationPolicy()
        entry = CacheEntry(value=value, policy=policy)
        with self._lock:
            replaced = key in self._entries
            self._entries[key] = entry
        if replaced:
            logger.debug("Replacing existing cache entry for key: %s", key)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``.

        An expired entry is evicted and treated as missing.

        Args:
            key: Cache key.
            default: Returned when the key is missing or expired.

        Returns:
            The cached value, or ``default``.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return default

        if entry.policy.is_expired():
            self._evict(key, entry)
            return default
        return entry.value

    def contains(self, key: str) -> bool:
        """Return True if a fresh entry exists for ``key``.

        Like :meth:`get`, this evicts the entry if it turns out to be stale.
        It also runs the entry's policy check, so a
        :class:`~lazycache.policy.CompareValueExpirationPolicy` that sees a
        changed value rolls its baseline forward here. Call ``set_new_value``
        before checking, not after.
        """
        return self.get(key, _MISSING) is not _MISSING

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def __len__(self) -> int:
        """Number of stored entries, including stale ones not yet evicted."""
        with self._lock:
            return len(self._entries)

    def remove(self, key: str) -> None:
        """Remove the entry stored under ``key``. Missing keys are ignored."""
        with self._lock:
            self._entries.pop(key, None)

    def get_or_compute(
        self,
        key: str,
        producer: Callable[[], T],
        policy: Optional[ExpirationPolicy] = None,
        *,
        expected_type: Optional[Type[T]] = None,
    ) -> T:
        """Return the cached value for ``key``, computing and storing it on a miss.

        The producer is called at most once per call, and only when no fresh
        entry exists. ``policy`` governs the newly stored entry only; an
        existing fresh entry keeps its own policy.

        Args:
            key: Cache key.
            producer: Zero-argument callable returning the value to cache.
            policy: Expiration policy for a newly computed entry. Defaults to
                a new :class:`TimeoutExpirationPolicy`, created when the value
                is stored.
            expected_type: If given, a cached hit must be an instance of it.

        Returns:
            The cached or newly computed value.

        Raises:
            CacheTypeMismatchError: If the cached value is not an
                ``expected_type``.
            Exception: Whatever ``producer`` raises. Nothing is stored then,
                and a stale entry evicted by this call stays evicted.
        """
        with self._producer_lock(key):
            value = self.get(key, _MISSING)
            if value is not _MISSING:
                if expected_type is not None and not isinstance(value, expected_type):
                    raise CacheTypeMismatchError(
                        key=key, expected=expected_type, actual=type(value)
                    )
                return value

            logger.debug("Cache miss for key %s; invoking producer", key)
            value = producer()
            self.put(key, value, policy)
            return value

    def purge_expired(self) -> int:
        """Evict every stale entry.

        Never called automatically. Useful for long-lived processes that
        write many keys they never read again.

        Every entry's policy is checked, with the same side effects as a
        read: a :class:`~lazycache.policy.CompareValueExpirationPolicy`
        compares its current ``new_value`` and rolls its baseline forward on
        a change. Sweeping before callers have set their new values can
        therefore evict entries early, or against a stale value.

        Returns:
            Number of entries evicted.
        """
        with self._lock:
            snapshot = list(self._entries.items())

        evicted = 0
        for key, entry in snapshot:
            if entry.policy.is_expired() and self._evict(key, entry):
                evicted += 1

        if evicted:
            logger.info("Purged %d expired cache entries", evicted)
        return evicted

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def _evict(self, key: str, entry: CacheEntry) -> bool:
        # Only evict the entry that was checked; a concurrent put may have
        # replaced it while its policy was being evaluated.
        with self._lock:
            if self._entries.get(key) is not entry:
                return False
            del self._entries[key]
        logger.debug("Evicted expired cache entry for key: %s", key)
        return True

    @contextmanager
    def _producer_lock(self, key: str) -> Iterator[None]:
        if not self.serialize_producers:
            yield
            return

        with self._locks_lock:
            slot = self._key_locks.get(key)
            if slot is None:
                slot = _KeyLock()
                self._key_locks[key] = slot
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            # Drop the lock once no caller holds or waits on it, so the table
            # only ever contains keys with a get_or_compute in flight.
            with self._locks_lock:
                slot.users -= 1
                if slot.users == 0 and self._key_locks.get(key) is slot:
                    del self._key_locks[key]


# Global singleton instance
_cache: Optional[Cache] = None
_cache_lock = threading.Lock()


def get_cache() -> Cache:
    """Get or create the process-wide cache instance."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                _cache = Cache()
                logger.info("Created process-wide cache")
    return _cache


def reset_cache() -> None:
    """Drop the process-wide cache so the next :func:`get_cache` builds a new one."""
    global _cache
    with _cache_lock:
        _cache = None
