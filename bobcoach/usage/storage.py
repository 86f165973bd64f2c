# -*- coding: utf-8 -*-
"""Usage — daily free-tier counters."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..app_db import db_conn
from ..config import settings
from ..profiles.storage import user_today
from ..subscriptions.storage import has_active_subscription

USAGE_TYPES = ("chat", "photoAnalysis")

_COUNT_COLUMNS = {"chat": "chat_count", "photoAnalysis": "photo_analysis_count"}
_MODEL_COLUMNS = {"opus": "opus_calls_count", "sonnet": "sonnet_calls_count"}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def free_limits() -> Dict[str, int]:
    return {"chat": settings.free_chat_limit, "photoAnalysis": settings.free_photo_limit}


def model_family(model: Optional[str]) -> Optional[str]:
    name = (model or "").lower()
    for family in _MODEL_COLUMNS:
        if family in name:
            return family
    return None


def _usage_row(user_id: str, day: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM usage_tracking WHERE user_id = ? AND date = ?",
            (user_id, day),
        ).fetchone()
        return dict(row) if row else None


def check_limit(*, user_id: str, usage_type: str, today: Optional[str] = None) -> Dict[str, Any]:
    if usage_type not in _COUNT_COLUMNS:
        raise ValueError(f"Unknown usage type: {usage_type}")
    if has_active_subscription(user_id):
        return {"allowed": True, "unlimited": True, "message": "Pro user - unlimited access"}

    limit = free_limits()[usage_type]
    usage = _usage_row(user_id, today or user_today(user_id))
    used = int(usage[_COUNT_COLUMNS[usage_type]]) if usage else 0

    # A day without a usage row has not spent anything yet.
    if usage is not None and used >= limit:
        return {
            "allowed": False,
            "remaining": 0,
            "limit": limit,
            "message": f"You've reached your daily limit of {limit} {usage_type}s. Upgrade to Pro for unlimited access!",
            "show_upgrade": True,
        }
    remaining = max(0, limit - used - 1)
    return {
        "allowed": True,
        "remaining": remaining,
        "limit": limit,
        "message": f"You have {remaining} {usage_type}s remaining today",
    }


def track_usage(
    *,
    user_id: str,
    usage_type: str,
    model_used: Optional[str] = None,
    today: Optional[str] = None,
) -> None:
    if usage_type not in _COUNT_COLUMNS:
        raise ValueError(f"Unknown usage type: {usage_type}")
    increments = {column: 0 for column in (*_COUNT_COLUMNS.values(), *_MODEL_COLUMNS.values())}
    increments[_COUNT_COLUMNS[usage_type]] = 1
    if model_used in _MODEL_COLUMNS:
        increments[_MODEL_COLUMNS[model_used]] = 1

    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO usage_tracking (
                user_id, date, chat_count, photo_analysis_count, opus_calls_count, sonnet_calls_count, last_reset_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, date) DO UPDATE SET
                chat_count = chat_count + excluded.chat_count,
                photo_analysis_count = photo_analysis_count + excluded.photo_analysis_count,
                opus_calls_count = opus_calls_count + excluded.opus_calls_count,
                sonnet_calls_count = sonnet_calls_count + excluded.sonnet_calls_count
            """,
            (
                user_id,
                today or user_today(user_id),
                increments["chat_count"],
                increments["photo_analysis_count"],
                increments["opus_calls_count"],
                increments["sonnet_calls_count"],
                _utc_now(),
            ),
        )


def get_usage_stats(*, user_id: str, today: Optional[str] = None) -> Dict[str, Any]:
    usage = _usage_row(user_id, today or user_today(user_id)) or {}
    is_pro = has_active_subscription(user_id)
    limits = free_limits()

    def bucket(usage_type: str) -> Dict[str, Optional[int]]:
        used = int(usage.get(_COUNT_COLUMNS[usage_type]) or 0)
        limit = None if is_pro else limits[usage_type]
        return {"used": used, "limit": limit, "remaining": None if limit is None else max(0, limit - used)}

    return {
        "today": {"chats": bucket("chat"), "photos": bucket("photoAnalysis")},
        "is_pro": is_pro,
        "model_usage": {
            "opus": int(usage.get("opus_calls_count") or 0),
            "sonnet": int(usage.get("sonnet_calls_count") or 0),
        },
    }
