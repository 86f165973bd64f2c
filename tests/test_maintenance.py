# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import os
import shutil
import sys
import tempfile
import threading
import time
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

SUNDAY = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
MONDAY = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestMaintenance(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="bobcoach-maint-test-"))
        data_root = cls._tmp / "data"
        os.environ["BOB_DATA_ROOT"] = str(data_root)
        os.environ["BOB_DB_PATH"] = str(data_root / "bob.db")
        os.environ["BOB_JWT_SECRET"] = "test-secret"
        os.environ["BOB_MAINTENANCE_INTERVAL_SEC"] = "0"
        os.environ.pop("ANTHROPIC_API_KEY", None)
        os.environ.pop("SENTRY_DSN", None)

        for name in list(sys.modules.keys()):
            if name == "bobcoach" or name.startswith("bobcoach."):
                sys.modules.pop(name, None)

        from bobcoach.api import app  # noqa: WPS433 (import inside test for env control)

        cls.client = TestClient(app)
        resp = cls.client.post("/api/auth/register", json={"email": "maint@example.com", "password": "password123"})
        cls.user_id = resp.json()["user"]["id"]

    @classmethod
    def tearDownClass(cls) -> None:
        cls.client.close()
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def test_tick_cleans_up_stale_rows(self) -> None:
        from bobcoach.cache.query_cache import query_cache  # noqa: WPS433
        from bobcoach.cache.storage import get_session_cache, set_session_cache  # noqa: WPS433
        from bobcoach.confirmations.storage import get_latest_pending, save_pending_confirmation  # noqa: WPS433
        from bobcoach.maintenance import Maintenance  # noqa: WPS433

        an_hour_ago = time.time() - 3600
        save_pending_confirmation(
            user_id=self.user_id,
            thread_id="thread_old",
            tool_call_id="confirm_old",
            confirmation_data={"description": "old toast", "items": []},
            now=an_hour_ago,
        )
        set_session_cache(user_id=self.user_id, cache_key="draft", data={"x": 1}, ttl_seconds=1, now=an_hour_ago)
        query_cache.set("todayStats:someone", {"calories": 1}, ttl=-1)

        counts = Maintenance(interval_sec=0).tick(now=MONDAY)
        self.assertEqual(counts["confirmations_expired"], 1)
        self.assertEqual(counts["cache_rows_deleted"], 1)
        self.assertGreaterEqual(counts["query_cache_swept"], 1)
        self.assertNotIn("users_calibrated", counts)

        self.assertIsNone(get_latest_pending(user_id=self.user_id, thread_id="thread_old"))
        self.assertIsNone(get_session_cache(user_id=self.user_id, cache_key="draft"))

    def test_weekly_calibration_runs_once_on_sunday(self) -> None:
        from bobcoach.maintenance import Maintenance  # noqa: WPS433

        job = Maintenance(interval_sec=0)
        with mock.patch("bobcoach.maintenance.run_weekly_calibration", return_value=3) as weekly:
            self.assertEqual(job.tick(now=SUNDAY)["users_calibrated"], 3)
            self.assertNotIn("users_calibrated", job.tick(now=SUNDAY))
            self.assertNotIn("users_calibrated", job.tick(now=MONDAY))
        self.assertEqual(weekly.call_count, 1)

    def test_loop_runs_tick_in_a_worker_thread(self) -> None:
        from bobcoach.maintenance import Maintenance  # noqa: WPS433

        job = Maintenance(interval_sec=0.01)
        tick_threads = []
        job.tick = lambda now=None: tick_threads.append(threading.get_ident()) or {}

        async def run_briefly() -> int:
            self.assertTrue(job.start())
            for _ in range(200):
                if tick_threads:
                    break
                await asyncio.sleep(0.01)
            await job.stop()
            return threading.get_ident()

        loop_thread = asyncio.run(run_briefly())
        self.assertTrue(tick_threads)
        self.assertNotEqual(tick_threads[0], loop_thread)

    def test_disabled_interval_does_not_start(self) -> None:
        from bobcoach.maintenance import Maintenance  # noqa: WPS433

        self.assertFalse(Maintenance(interval_sec=0).start())


if __name__ == "__main__":
    unittest.main()
