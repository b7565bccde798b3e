"""Custom exceptions for cache operations."""

from __future__ import annotations

from dataclasses import dataclass


class CacheError(RuntimeError):
    """Base exception for cache related failures."""


@dataclass(slots=True)
class CacheTypeMismatchError(CacheError, TypeError):
    """Raised when a cached value is not of the type the caller asked for."""

    key: str
    expected: type
    actual: type

    def __str__(self) -> str:
        return (
            f"cached value for key {self.key!r} is {self.actual.__qualname__}, "
            f"expected {self.expected.__qualname__}"
        )
