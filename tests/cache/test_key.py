"""Tests for cache key utilities."""

from __future__ import annotations

from lazycache.key import derive_key


class TestDeriveKey:
    """Test cases for derive_key function."""

    def test_appends_suffix(self) -> None:
        assert derive_key("report", "_compareValue") == "report_compareValue"

    def test_distinct_suffixes_give_distinct_keys(self) -> None:
        assert derive_key("k", "_a") != derive_key("k", "_b")

    def test_empty_key(self) -> None:
        assert derive_key("", "_compareValue") == "_compareValue"
