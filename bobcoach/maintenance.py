# -*- coding: utf-8 -*-
"""Periodic housekeeping inside the web process.

Every tick:
- expire stale pending confirmations
- delete confirmed bubbles past their TTL
- delete expired session-cache rows
- sweep the in-process query cache

On Sundays (UTC) the weekly calorie calibration also runs, once per day.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Dict, Optional

from .cache.query_cache import query_cache
from .cache.storage import cleanup_expired_cache
from .config import settings
from .confirmations.storage import cleanup_expired_confirmations, cleanup_old_bubbles
from .monitoring import track_error
from .summaries.storage import run_weekly_calibration

log = logging.getLogger(__name__)

SUNDAY = 6


class Maintenance:
    def __init__(self, interval_sec: Optional[float] = None) -> None:
        self.interval_sec = settings.maintenance_interval_sec if interval_sec is None else interval_sec
        self.last_calibration: Optional[date] = None
        self._task: Optional[asyncio.Task] = None

    def tick(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or datetime.now(timezone.utc)
        counts = {
            "confirmations_expired": cleanup_expired_confirmations(),
            "bubbles_deleted": cleanup_old_bubbles(),
            "cache_rows_deleted": cleanup_expired_cache(),
            "query_cache_swept": query_cache.sweep(),
        }
        today = now.date()
        if now.weekday() == SUNDAY and self.last_calibration != today:
            counts["users_calibrated"] = run_weekly_calibration()
            self.last_calibration = today
        if any(counts.values()):
            log.info("maintenance: %s", counts)
        return counts

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            try:
                # SQLite work stays off the event loop.
                await asyncio.to_thread(self.tick)
            except Exception as exc:  # keep the loop alive; the next tick retries
                track_error(exc, context={"task": "maintenance"})

    def start(self) -> bool:
        if self.interval_sec <= 0 or self._task is not None:
            return False
        self._task = asyncio.get_running_loop().create_task(self._loop())
        log.info("maintenance task started (every %.0fs)", self.interval_sec)
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


maintenance = Maintenance()
