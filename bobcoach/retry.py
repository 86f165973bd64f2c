# -*- coding: utf-8 -*-
"""Retry with exponential backoff + jitter for flaky network calls."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

log = logging.getLogger(__name__)

T = TypeVar("T")


def _status_of(error: BaseException) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    return status if isinstance(status, int) else None


def default_should_retry(error: BaseException) -> bool:
    """Network errors and 5xx retry; 4xx never does."""
    if isinstance(error, (httpx.TransportError, ConnectionError, asyncio.TimeoutError)):
        return True
    status = _status_of(error)
    if status is not None:
        if 500 <= status < 600:
            return True
        if 400 <= status < 500:
            return False
    return True


@dataclass(frozen=True)
class RetryOptions:
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    should_retry: Callable[[BaseException], bool] = default_should_retry
    on_retry: Optional[Callable[[int, BaseException], None]] = None


RETRY_CONFIGS: Dict[str, RetryOptions] = {
    "api": RetryOptions(max_attempts=3, initial_delay=0.5, max_delay=5.0),
    "upload": RetryOptions(max_attempts=5, initial_delay=1.0, max_delay=15.0),
    "realtime": RetryOptions(max_attempts=2, initial_delay=0.1, max_delay=1.0),
}


def backoff_delay(attempt: int, options: RetryOptions) -> float:
    """Base delay before retry number ``attempt`` (1-based), without jitter."""
    base = options.initial_delay * (options.backoff_multiplier ** (attempt - 1))
    return min(base, options.max_delay)


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    **overrides: Any,
) -> T:
    opts = options or RetryOptions()
    if overrides:
        opts = replace(opts, **overrides)

    last_error: BaseException | None = None
    for attempt in range(1, opts.max_attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            last_error = exc
            if not opts.should_retry(exc) or attempt == opts.max_attempts:
                raise

            delay = backoff_delay(attempt, opts)
            # Jitter keeps concurrent clients from retrying in lockstep.
            total = delay + random.random() * 0.3 * delay
            if opts.on_retry is not None:
                opts.on_retry(attempt, exc)
            log.info("retrying after %s (attempt %d/%d, %.2fs)", type(exc).__name__, attempt, opts.max_attempts, total)
            await asyncio.sleep(total)

    # max_attempts < 1
    raise RuntimeError("retry_with_backoff called with max_attempts < 1") from last_error
