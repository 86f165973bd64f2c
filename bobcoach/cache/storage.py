# -*- coding: utf-8 -*-
"""Cache — per-user session cache stored in the app DB."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from ..app_db import db_conn
from ..config import settings

log = logging.getLogger(__name__)

CHAT_CONTEXT_KEY = "chat_context"


def get_session_cache(*, user_id: str, cache_key: str, now: float | None = None) -> Optional[Any]:
    now = time.time() if now is None else now
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT data_json, expires_at FROM session_cache WHERE user_id = ? AND cache_key = ?",
            (user_id, cache_key),
        ).fetchone()
    if not row or float(row["expires_at"]) < now:
        return None
    try:
        return json.loads(row["data_json"])
    except ValueError as exc:
        log.error("session cache %s for %s is not valid JSON: %s", cache_key, user_id, exc)
        return None


def set_session_cache(
    *,
    user_id: str,
    cache_key: str,
    data: Any,
    ttl_seconds: int | None = None,
    now: float | None = None,
) -> None:
    now = time.time() if now is None else now
    ttl = settings.session_cache_ttl_sec if ttl_seconds is None else int(ttl_seconds)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO session_cache (user_id, cache_key, data_json, expires_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id, cache_key) DO UPDATE SET
                data_json = excluded.data_json,
                expires_at = excluded.expires_at
            """,
            (user_id, cache_key, json.dumps(data, ensure_ascii=False, default=str), now + ttl),
        )


def clear_session_cache(*, user_id: str) -> int:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM session_cache WHERE user_id = ?", (user_id,))
        return int(cur.rowcount or 0)


def clear_session_cache_key(*, user_id: str, cache_key: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "DELETE FROM session_cache WHERE user_id = ? AND cache_key = ?",
            (user_id, cache_key),
        )


def cleanup_expired_cache(*, now: float | None = None) -> int:
    now = time.time() if now is None else now
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM session_cache WHERE expires_at < ?", (now,))
        deleted = int(cur.rowcount or 0)
    if deleted:
        log.info("cleaned up %d expired session cache entries", deleted)
    return deleted
