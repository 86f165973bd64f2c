# -*- coding: utf-8 -*-
"""Confirmations — pending food-log confirmations and confirmed bubble states.

`expires_at` / `created_at` / `confirmed_at` are epoch seconds so the TTL checks
are plain comparisons.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import db_conn
from ..config import settings

log = logging.getLogger(__name__)


def _pending_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["confirmation_data"] = json.loads(data.pop("confirmation_json") or "{}")
    return data


def save_pending_confirmation(
    *,
    user_id: str,
    thread_id: str,
    tool_call_id: str,
    confirmation_data: Dict[str, Any],
    now: Optional[float] = None,
) -> str:
    ts = time.time() if now is None else now
    confirmation_id = str(uuid4())
    with db_conn(settings.app_db_path) as conn:
        # Only the newest proposal in a thread can be confirmed.
        conn.execute(
            """
            UPDATE pending_confirmations SET status = 'expired'
            WHERE user_id = ? AND thread_id = ? AND status = 'pending'
            """,
            (user_id, thread_id),
        )
        conn.execute(
            """
            INSERT INTO pending_confirmations (
                id, user_id, thread_id, tool_call_id, confirmation_json, status, created_at, expires_at
            ) VALUES (?, ?, ?, ?, ?, 'pending', ?, ?)
            """,
            (
                confirmation_id,
                user_id,
                thread_id,
                tool_call_id,
                json.dumps(confirmation_data, ensure_ascii=False),
                ts,
                ts + settings.confirmation_ttl_min * 60,
            ),
        )
    log.info(
        "pending confirmation %s created (thread=%s, food=%s)",
        confirmation_id,
        thread_id,
        confirmation_data.get("description"),
    )
    return confirmation_id


def get_latest_pending(*, user_id: str, thread_id: str, now: Optional[float] = None) -> Optional[Dict[str, Any]]:
    ts = time.time() if now is None else now
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            """
            SELECT * FROM pending_confirmations
            WHERE user_id = ? AND thread_id = ? AND status = 'pending'
            ORDER BY created_at DESC LIMIT 1
            """,
            (user_id, thread_id),
        ).fetchone()
    if not row or row["expires_at"] < ts:
        return None
    return _pending_row(row)


def _set_status(*, user_id: str, confirmation_id: str, status: str) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM pending_confirmations WHERE id = ? AND user_id = ?",
            (confirmation_id, user_id),
        ).fetchone()
        if not row:
            raise HTTPException(status_code=404, detail="Confirmation not found")
        conn.execute("UPDATE pending_confirmations SET status = ? WHERE id = ?", (status, confirmation_id))
    data = _pending_row(row)
    data["status"] = status
    return data


def confirm_pending(*, user_id: str, confirmation_id: str) -> Dict[str, Any]:
    return _set_status(user_id=user_id, confirmation_id=confirmation_id, status="confirmed")


def expire_pending(*, user_id: str, confirmation_id: str) -> Dict[str, Any]:
    return _set_status(user_id=user_id, confirmation_id=confirmation_id, status="expired")


def cleanup_expired_confirmations(*, now: Optional[float] = None) -> int:
    ts = time.time() if now is None else now
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE pending_confirmations SET status = 'expired' WHERE status = 'pending' AND expires_at < ?",
            (ts,),
        )
        return cur.rowcount


def clear_user_pending(*, user_id: str) -> int:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE pending_confirmations SET status = 'expired' WHERE user_id = ? AND status = 'pending'",
            (user_id,),
        )
        return cur.rowcount


# ---- confirmed bubbles ----

def save_bubble(
    *,
    user_id: str,
    thread_id: str,
    message_index: int,
    confirmation_id: str,
    food_description: str,
    status: str,
    tool_call_id: Optional[str] = None,
    now: Optional[float] = None,
) -> str:
    ts = time.time() if now is None else now
    with db_conn(settings.app_db_path) as conn:
        existing = conn.execute(
            "SELECT id, user_id FROM confirmed_bubbles WHERE confirmation_id = ?",
            (confirmation_id,),
        ).fetchone()
        if existing and existing["user_id"] != user_id:
            raise HTTPException(status_code=404, detail="Confirmation not found")
        if existing:
            conn.execute(
                "UPDATE confirmed_bubbles SET status = ?, confirmed_at = ? WHERE id = ?",
                (status, ts, existing["id"]),
            )
            return existing["id"]

        bubble_id = str(uuid4())
        conn.execute(
            """
            INSERT INTO confirmed_bubbles (
                id, user_id, thread_id, message_index, confirmation_id, tool_call_id,
                food_description, status, confirmed_at, expires_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                bubble_id,
                user_id,
                thread_id,
                int(message_index),
                confirmation_id,
                tool_call_id,
                food_description,
                status,
                ts,
                ts + settings.bubble_ttl_days * 24 * 60 * 60,
            ),
        )
        return bubble_id


def list_bubbles(*, user_id: str, thread_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            """
            SELECT confirmation_id, message_index, status, food_description, confirmed_at
            FROM confirmed_bubbles WHERE user_id = ? AND thread_id = ?
            ORDER BY message_index ASC
            """,
            (user_id, thread_id),
        ).fetchall()
        return [dict(r) for r in rows]


def cleanup_old_bubbles(*, now: Optional[float] = None) -> int:
    ts = time.time() if now is None else now
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM confirmed_bubbles WHERE expires_at < ?", (ts,))
        return cur.rowcount
