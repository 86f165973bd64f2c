# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from bobcoach.cache.query_cache import CACHE_KEYS, QueryCache, get_cached


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestQueryCache(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.cache = QueryCache(clock=self.clock)

    def test_get_evicts_expired_entries(self) -> None:
        self.cache.set("a", {"x": 1}, ttl=10)
        self.assertEqual(self.cache.get("a"), {"x": 1})
        self.clock.now += 11
        self.assertIsNone(self.cache.get("a"))
        self.assertEqual(len(self.cache), 0)

    def test_invalidate_pattern_and_sweep(self) -> None:
        self.cache.set(CACHE_KEYS.today_stats("u1", "2026-03-01"), 1, ttl=300)
        self.cache.set(CACHE_KEYS.user_profile("u1"), 2, ttl=600)
        self.cache.set(CACHE_KEYS.user_profile("u2"), 3, ttl=5)
        self.assertEqual(self.cache.invalidate_pattern(r":u1$"), 2)
        self.assertEqual(len(self.cache), 1)

        self.clock.now += 6
        self.assertEqual(self.cache.sweep(), 1)
        self.assertEqual(len(self.cache), 0)

    def test_today_stats_keys_are_per_day(self) -> None:
        self.assertNotEqual(CACHE_KEYS.today_stats("u1", "2026-03-01"), CACHE_KEYS.today_stats("u1", "2026-03-02"))
        self.cache.set(CACHE_KEYS.today_stats("u1", "2026-03-01"), {"calories": 900}, ttl=300)
        self.cache.set(CACHE_KEYS.today_stats("u1", "2026-03-02"), {"calories": 0}, ttl=300)
        self.cache.set(CACHE_KEYS.today_stats("u10", "2026-03-02"), {"calories": 5}, ttl=300)
        self.assertIsNone(self.cache.get(CACHE_KEYS.today_stats("u1", "2026-03-03")))

        self.assertEqual(self.cache.invalidate_pattern(CACHE_KEYS.today_stats_pattern("u1")), 2)
        self.assertEqual(self.cache.get(CACHE_KEYS.today_stats("u10", "2026-03-02")), {"calories": 5})

    def test_get_cached_calls_fetcher_once_per_ttl(self) -> None:
        calls = []

        def fetch():
            calls.append(1)
            return len(calls)

        self.assertEqual(get_cached("k", fetch, ttl=60, cache=self.cache), 1)
        self.assertEqual(get_cached("k", fetch, ttl=60, cache=self.cache), 1)
        self.clock.now += 61
        self.assertEqual(get_cached("k", fetch, ttl=60, cache=self.cache), 2)

    def test_destroy(self) -> None:
        self.cache.set("a", 1, ttl=10)
        self.cache.invalidate("missing")
        self.cache.destroy()
        self.assertIsNone(self.cache.get("a"))


if __name__ == "__main__":
    unittest.main()
