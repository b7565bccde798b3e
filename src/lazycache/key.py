"""Cache key construction utilities.

Derived keys name the auxiliary slots an expiration policy keeps in the same
cache it guards.
"""

from __future__ import annotations


def derive_key(key: str, suffix: str) -> str:
    """Return the key of an auxiliary slot belonging to ``key``.

    Example:
        >>> derive_key("report", "_compareValue")
        'report_compareValue'
    """
    return f"{key}{suffix}"
