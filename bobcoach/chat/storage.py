# -*- coding: utf-8 -*-
"""Chat — DB storage helpers (daily threads + message history)."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..cache.storage import CHAT_CONTEXT_KEY, clear_session_cache_key
from ..config import settings
from ..profiles.storage import user_now


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def get_or_create_daily_thread(*, user_id: str, today: Optional[str] = None) -> Dict[str, Any]:
    """One thread per user per local day."""
    day = today or user_now(user_id).strftime("%Y-%m-%d")
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM chat_threads WHERE user_id = ? AND date = ?",
            (user_id, day),
        ).fetchone()
        if row:
            return {"thread_id": row["thread_id"], "is_new": False, "message_count": int(row["message_count"])}

        thread_id = f"thread_{user_id}_{int(time.time() * 1000)}"
        now = _utc_now()
        conn.execute(
            """
            INSERT INTO chat_threads (thread_id, user_id, date, message_count, first_message_at, last_message_at)
            VALUES (?, ?, ?, 0, ?, ?)
            """,
            (thread_id, user_id, day, now, now),
        )
    return {"thread_id": thread_id, "is_new": True, "message_count": 0}


def _message_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["metadata"] = json.loads(data.pop("metadata_json") or "{}")
    return data


def save_message(
    *,
    user_id: str,
    thread_id: str,
    role: str,
    content: str,
    tool_calls: Optional[List[Dict[str, Any]]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    msg_id = str(uuid4())
    ts = time.time() if now is None else now
    meta = {**(metadata or {}), "thread_id": thread_id}
    if tool_calls:
        meta["tool_calls"] = tool_calls
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO chat_history (id, user_id, role, content, timestamp, metadata_json) VALUES (?, ?, ?, ?, ?, ?)",
            (msg_id, user_id, role, content, ts, json.dumps(meta, ensure_ascii=False)),
        )
        conn.execute(
            """
            UPDATE chat_threads SET message_count = message_count + 1, last_message_at = ?
            WHERE thread_id = ? AND user_id = ?
            """,
            (_utc_now(), thread_id, user_id),
        )
    # The cached context carries the last messages.
    clear_session_cache_key(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)
    return {"id": msg_id, "role": role, "content": content, "timestamp": ts, "metadata": meta}


def get_recent_messages(*, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Last `limit` messages in chronological order."""
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM chat_history WHERE user_id = ? ORDER BY timestamp DESC LIMIT ?",
            (user_id, int(limit)),
        ).fetchall()
    return [_message_row(r) for r in reversed(rows)]


def get_today_messages(*, user_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    local = now or user_now(user_id)
    start = local.replace(hour=0, minute=0, second=0, microsecond=0).timestamp()
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM chat_history WHERE user_id = ? AND timestamp >= ? ORDER BY timestamp ASC",
            (user_id, start),
        ).fetchall()
        return [_message_row(r) for r in rows]


def clear_history(*, user_id: str) -> int:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM chat_history WHERE user_id = ?", (user_id,))
        conn.execute("DELETE FROM chat_threads WHERE user_id = ?", (user_id,))
        deleted = cur.rowcount
    clear_session_cache_key(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)
    return deleted
