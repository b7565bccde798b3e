"""Expiration policies for cache entries.

A policy is attached to every entry and asked, at read time, whether the entry
has gone stale. Nothing sweeps the cache in the background: a stale entry is
only discovered and evicted by the read that checks it.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Optional

from lazycache.config import get_settings
from lazycache.key import derive_key

if TYPE_CHECKING:
    from lazycache.cache import Cache

logger = logging.getLogger(__name__)


class ExpirationPolicy(ABC):
    """Decides whether a cached entry is stale."""

    @abstractmethod
    def is_expired(self) -> bool:
        """Return True if the entry guarded by this policy has expired."""
        ...


class TimeoutExpirationPolicy(ExpirationPolicy):
    """Expires a fixed number of seconds after the policy was created.

    The creation time stands in for the storage time, so a policy should be
    built immediately before the entry it guards is stored. ``timeout_seconds``
    may be changed afterwards and applies to all later checks.

    Args:
        timeout_seconds: Lifetime in seconds. Defaults to
            ``Settings.DEFAULT_TIMEOUT_SECONDS`` (30 minutes). Zero expires
            as soon as the clock moves past the creation time.
        clock: Source of the current time in seconds.
    """

    def __init__(
        self,
        timeout_seconds: Optional[int] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if timeout_seconds is None:
            timeout_seconds = get_settings().DEFAULT_TIMEOUT_SECONDS
        self._clock = clock
        self._created_at = clock()
        self.timeout_seconds = timeout_seconds

    @property
    def created_at(self) -> float:
        """Time the policy (and so its entry) was created."""
        return self._created_at

    @property
    def expires_at(self) -> float:
        return self._created_at + self.timeout_seconds

    def is_expired(self) -> bool:
        return self._clock() > self._created_at + self.timeout_seconds

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(timeout_seconds={self.timeout_seconds}, "
            f"created_at={self._created_at})"
        )


class CompareValueExpirationPolicy(ExpirationPolicy):
    """Expires when a tracked value changes.

    The policy compares a caller-supplied new value against a baseline. The
    baseline lives in the cache itself, in the slot ``key + COMPARE_VALUE_SUFFIX``
    under a default timeout policy, so it can be forgotten and rebuilt like
    any other entry. When a change is detected the slot is evicted and
    re-seeded with the new value, so the baseline rolls forward once per
    change.

    Instances are shared per key through :meth:`get_policy`, which memoizes
    them in the same cache under ``key + POLICY_KEY_SUFFIX``.

    Values are compared with ``!=`` (value equality, not identity).

    ``set_new_value`` followed by ``is_expired`` assumes a single writer per
    policy. Threads sharing a policy should use :meth:`check_and_advance`.

    Example:
        >>> cache = Cache()
        >>> revision = 1
        >>> policy = CompareValueExpirationPolicy.get_policy(
        ...     "report", revision, cache
        ... ).set_new_value(revision)
        >>> cache.get_or_compute("report", build_report, policy)
    """

    def __init__(self, key: str, compare_value: Any, cache: Cache) -> None:
        self._key = key
        self._cache = cache
        self._compare_value_key = derive_key(key, get_settings().COMPARE_VALUE_SUFFIX)
        self._lock = threading.Lock()
        self._new_value: Any = None
        self._source_value = cache.get_or_compute(
            self._compare_value_key, lambda: compare_value
        )

    @classmethod
    def get_policy(
        cls,
        key: str,
        compare_value: Any,
        cache: Optional[Cache] = None,
    ) -> CompareValueExpirationPolicy:
        """Get the shared policy for the entry stored under ``key``.

        Args:
            key: Key of the cache entry that depends on this policy.
            compare_value: Baseline to seed with if none is cached yet.
            cache: Cache holding both the entry and the policy state.
                Defaults to the process-wide cache.

        Returns:
            The memoized policy for ``key``, built on first use or after the
            memoized instance itself has timed out.
        """
        if cache is None:
            from lazycache.cache import get_cache

            cache = get_cache()

        policy_key = derive_key(key, get_settings().POLICY_KEY_SUFFIX)
        return cache.get_or_compute(
            policy_key,
            lambda: cls(key, compare_value, cache),
            expected_type=cls,
        )

    @property
    def key(self) -> str:
        """Key of the cache entry that depends on this policy."""
        return self._key

    @property
    def compare_value_key(self) -> str:
        return self._compare_value_key

    @property
    def source_value(self) -> Any:
        """Baseline the new value is compared against."""
        return self._source_value

    @property
    def new_value(self) -> Any:
        return self._new_value

    @new_value.setter
    def new_value(self, value: Any) -> None:
        self._new_value = value

    def set_new_value(self, new_value: Any) -> CompareValueExpirationPolicy:
        """Record the value to compare on the next check and return self."""
        self._new_value = new_value
        return self

    def is_expired(self) -> bool:
        """Return True if the new value differs from the baseline.

        A detected change replaces the cached baseline with the new value.
        """
        with self._lock:
            return self._check()

    def check_and_advance(self, new_value: Any) -> bool:
        """Set the new value and check it in one step."""
        with self._lock:
            self._new_value = new_value
            return self._check()

    def _check(self) -> bool:
        new_value = self._new_value
        if new_value == self._source_value:
            return False

        logger.debug(
            "Compared value changed for key %s; rolling baseline forward", self._key
        )
        self._cache.remove(self._compare_value_key)
        self._source_value = self._cache.get_or_compute(
            self._compare_value_key, lambda: new_value
        )
        return True

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(key={self._key!r}, "
            f"source_value={self._source_value!r}, new_value={self._new_value!r})"
        )
