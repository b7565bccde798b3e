"""Process-local key-value cache with pluggable expiration policies."""

from __future__ import annotations

from lazycache.cache import Cache, CacheEntry, get_cache, reset_cache
from lazycache.config import Settings, get_settings
from lazycache.exceptions import CacheError, CacheTypeMismatchError
from lazycache.key import derive_key
from lazycache.policy import (
    CompareValueExpirationPolicy,
    ExpirationPolicy,
    TimeoutExpirationPolicy,
)

__version__ = "0.1.0"

__all__ = [
    "Cache",
    "CacheEntry",
    "get_cache",
    "reset_cache",
    "ExpirationPolicy",
    "TimeoutExpirationPolicy",
    "CompareValueExpirationPolicy",
    "CacheError",
    "CacheTypeMismatchError",
    "Settings",
    "get_settings",
    "derive_key",
]
