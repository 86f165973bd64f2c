# -*- coding: utf-8 -*-
"""Cache — in-process TTL map for hot read paths (profile, today's stats, ...)."""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")

DEFAULT_TTL_SEC = 300.0


@dataclass
class _Entry:
    data: Any
    stored_at: float
    ttl: float


class QueryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at > entry.ttl

    def set(self, key: str, data: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = _Entry(data=data, stored_at=self._clock(), ttl=float(ttl))

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, self._clock()):
                del self._entries[key]
                return None
            return entry.data

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        with self._lock:
            doomed = [k for k in self._entries if regex.search(k)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            doomed = [k for k, e in self._entries.items() if self._expired(e, now)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def destroy(self) -> None:
        with self._lock:
            self._entries.clear()


query_cache = QueryCache()


def get_cached(key: str, fetcher: Callable[[], T], ttl: float = DEFAULT_TTL_SEC, cache: QueryCache | None = None) -> T:
    c = cache or query_cache
    hit = c.get(key)
    if hit is not None:
        return hit
    data = fetcher()
    c.set(key, data, ttl)
    return data


def invalidate_user(user_id: str) -> int:
    return query_cache.invalidate_pattern(rf":{re.escape(user_id)}$")


class CACHE_KEYS:
    @staticmethod
    def today_stats(user_id: str, day: str) -> str:
        # Keyed by the user-local date so a new day never reads yesterday.
        return f"todayStats:{day}:{user_id}"

    @staticmethod
    def today_stats_pattern(user_id: str) -> str:
        return rf"^todayStats:[^:]+:{re.escape(user_id)}$"

    @staticmethod
    def user_profile(user_id: str) -> str:
        return f"userProfile:{user_id}"

    @staticmethod
    def daily_summary(user_id: str) -> str:
        return f"dailySummary:{user_id}"

    @staticmethod
    def preferences(user_id: str) -> str:
        return f"preferences:{user_id}"


CACHE_TTL = {
    "today_stats": 5 * 60,
    "user_profile": 10 * 60,
    "daily_summary": 5 * 60,
    "preferences": 15 * 60,
}
