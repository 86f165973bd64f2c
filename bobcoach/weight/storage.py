# -*- coding: utf-8 -*-
"""Weight — DB storage helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import db_conn
from ..config import settings
from ..profiles.storage import get_profile, invalidate_profile_caches, user_now


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def log_weight(
    *,
    user_id: str,
    weight: float,
    unit: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Record today's weight; a second log on the same local day replaces the first."""
    local = now or user_now(user_id)
    date = local.strftime("%Y-%m-%d")
    time = local.strftime("%H:%M")
    with db_conn(settings.app_db_path) as conn:
        existing = conn.execute(
            "SELECT id FROM weight_logs WHERE user_id = ? AND date = ?",
            (user_id, date),
        ).fetchone()
        if existing:
            log_id = existing["id"]
            conn.execute(
                "UPDATE weight_logs SET weight = ?, unit = ?, time = ?, notes = ? WHERE id = ?",
                (float(weight), unit, time, notes, log_id),
            )
        else:
            log_id = str(uuid4())
            conn.execute(
                """
                INSERT INTO weight_logs (id, user_id, weight, unit, date, time, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (log_id, user_id, float(weight), unit, date, time, notes, _utc_now()),
            )
        row = conn.execute("SELECT * FROM weight_logs WHERE id = ?", (log_id,)).fetchone()
    invalidate_profile_caches(user_id)
    return dict(row)


def get_weight_logs_between(*, user_id: str, start: str, end: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM weight_logs WHERE user_id = ? AND date >= ? AND date <= ? ORDER BY date ASC",
            (user_id, start, end),
        ).fetchall()
        return [dict(r) for r in rows]


def get_latest_weight(*, user_id: str, today: Optional[str] = None) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM weight_logs WHERE user_id = ? ORDER BY date DESC, time DESC LIMIT 1",
            (user_id,),
        ).fetchone()
    if not row:
        return None
    latest = dict(row)

    today = today or user_now(user_id).strftime("%Y-%m-%d")
    week_ago = (datetime.strptime(today, "%Y-%m-%d") - timedelta(days=7)).strftime("%Y-%m-%d")
    week = get_weight_logs_between(user_id=user_id, start=week_ago, end="9999-12-31")
    latest["trend"] = round(latest["weight"] - week[0]["weight"], 2) if len(week) > 1 else 0.0
    return latest


def list_weight_logs(*, user_id: str, limit: int = 30) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM weight_logs WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            (user_id, int(limit)),
        ).fetchall()
    return sorted((dict(r) for r in rows), key=lambda r: r["date"], reverse=True)


def delete_weight_log(*, user_id: str, log_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM weight_logs WHERE id = ? AND user_id = ?", (log_id, user_id))
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Weight log not found")
    invalidate_profile_caches(user_id)


def get_weight_stats(*, user_id: str) -> Optional[Dict[str, Any]]:
    profile = get_profile(user_id)
    if not profile:
        return None
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT weight, date FROM weight_logs WHERE user_id = ? ORDER BY date ASC",
            (user_id,),
        ).fetchall()
    if not rows:
        return None

    starting = float(rows[0]["weight"])
    current = float(rows[-1]["weight"])
    target = float(profile["target_weight"])
    return {
        "current": current,
        "starting": starting,
        "target": target,
        "total_change": round(current - starting, 2),
        "to_goal": round(target - current, 2),
        "days_tracked": len(rows),
    }
