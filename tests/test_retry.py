# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import unittest
from unittest import mock

import httpx

from bobcoach.retry import RETRY_CONFIGS, RetryOptions, backoff_delay, default_should_retry, retry_with_backoff


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://llm.example/v1/messages")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class _Flaky:
    def __init__(self, errors) -> None:
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestBackoffDelay(unittest.TestCase):
    def test_api_preset_is_exponential_and_capped(self) -> None:
        opts = RETRY_CONFIGS["api"]
        self.assertEqual([backoff_delay(n, opts) for n in range(1, 6)], [0.5, 1.0, 2.0, 4.0, 5.0])

    def test_presets(self) -> None:
        self.assertEqual(RETRY_CONFIGS["upload"].max_attempts, 5)
        self.assertEqual(RETRY_CONFIGS["realtime"].initial_delay, 0.1)
        self.assertEqual(RETRY_CONFIGS["realtime"].max_delay, 1.0)

    def test_should_retry(self) -> None:
        self.assertTrue(default_should_retry(httpx.ConnectError("refused")))
        self.assertTrue(default_should_retry(_status_error(503)))
        self.assertFalse(default_should_retry(_status_error(400)))
        self.assertFalse(default_should_retry(_status_error(429)))


class TestRetryWithBackoff(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("bobcoach.retry.asyncio.sleep", new=mock.AsyncMock())
        self.sleep = patcher.start()
        self.addCleanup(patcher.stop)

    def test_recovers_after_transient_errors(self) -> None:
        fn = _Flaky([httpx.ConnectError("down"), _status_error(502)])
        seen = []
        result = asyncio.run(
            retry_with_backoff(fn, RETRY_CONFIGS["api"], on_retry=lambda attempt, exc: seen.append(attempt))
        )
        self.assertEqual(result, "ok")
        self.assertEqual(fn.calls, 3)
        self.assertEqual(seen, [1, 2])
        self.assertEqual(self.sleep.await_count, 2)

    def test_jitter_stays_within_thirty_percent(self) -> None:
        fn = _Flaky([httpx.ConnectError("down")])
        asyncio.run(retry_with_backoff(fn, RetryOptions(initial_delay=1.0, max_delay=10.0)))
        waited = self.sleep.await_args.args[0]
        self.assertGreaterEqual(waited, 1.0)
        self.assertLessEqual(waited, 1.3)

    def test_client_errors_are_not_retried(self) -> None:
        fn = _Flaky([_status_error(401)])
        with self.assertRaises(httpx.HTTPStatusError):
            asyncio.run(retry_with_backoff(fn, RETRY_CONFIGS["api"]))
        self.assertEqual(fn.calls, 1)
        self.sleep.assert_not_awaited()

    def test_reraises_last_error_after_max_attempts(self) -> None:
        fn = _Flaky([_status_error(500), _status_error(502), _status_error(503)])
        with self.assertRaises(httpx.HTTPStatusError) as ctx:
            asyncio.run(retry_with_backoff(fn, RETRY_CONFIGS["api"]))
        self.assertEqual(ctx.exception.response.status_code, 503)
        self.assertEqual(fn.calls, 3)


if __name__ == "__main__":
    unittest.main()
