# -*- coding: utf-8 -*-
"""Logging + error tracking (Sentry)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import sentry_sdk

from .config import settings

log = logging.getLogger(__name__)

_configured = False


def setup_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=(level or settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _configured = True


def init_error_tracking() -> bool:
    """Initialize Sentry when SENTRY_DSN is set. Returns whether tracking is active."""
    if not settings.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=0.2,
        send_default_pii=False,
    )
    log.info("error tracking enabled (environment=%s)", settings.sentry_environment)
    return True


def track_error(
    exc: BaseException,
    *,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    log.error("tracked error: %s", exc, exc_info=exc)
    if not settings.sentry_dsn:
        return
    with sentry_sdk.new_scope() as scope:
        if user_id:
            scope.set_user({"id": user_id})
        for key, value in (context or {}).items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(exc)


def track_message(message: str, *, level: str = "error", context: Optional[Dict[str, Any]] = None) -> None:
    levelno = logging.WARNING if level == "warning" else logging.ERROR
    log.log(levelno, message)
    if not settings.sentry_dsn:
        return
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_extra(key, value)
        sentry_sdk.capture_message(message, level=level)
