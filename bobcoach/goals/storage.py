# -*- coding: utf-8 -*-
"""Goals — goal history and goal achievements."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import db_conn
from ..config import settings
from ..profiles.storage import get_profile, user_today
from ..tools import check_goal_achievement, convert_to_kg
from ..weight.storage import get_latest_weight, get_weight_logs_between

log = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---- goal history ----

def get_active_goal(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM goal_history WHERE user_id = ? AND status = 'active' ORDER BY started_at DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        return dict(row) if row else None


def create_goal(
    *,
    user_id: str,
    goal: str,
    starting_weight: float,
    target_weight: float,
    starting_unit: str,
    reason: Optional[str] = None,
    triggered_by: str = "user",
) -> Dict[str, Any]:
    """Start a new goal; any goal still active is abandoned first."""
    now = _utc_now()
    goal_id = str(uuid4())
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "UPDATE goal_history SET status = 'abandoned', completed_at = ? WHERE user_id = ? AND status = 'active'",
            (now, user_id),
        )
        conn.execute(
            """
            INSERT INTO goal_history (
                id, user_id, goal, starting_weight, target_weight, starting_unit, status, reason,
                triggered_by, started_at, completed_at, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, 'active', ?, ?, ?, NULL, ?)
            """,
            (goal_id, user_id, goal, float(starting_weight), float(target_weight), starting_unit, reason,
             triggered_by, now, now),
        )
        row = conn.execute("SELECT * FROM goal_history WHERE id = ?", (goal_id,)).fetchone()
        return dict(row)


def complete_goal(*, user_id: str, goal_id: str) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE goal_history SET status = 'completed', completed_at = ? WHERE id = ? AND user_id = ?",
            (_utc_now(), goal_id, user_id),
        )
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Goal not found")
        row = conn.execute("SELECT * FROM goal_history WHERE id = ?", (goal_id,)).fetchone()
        return dict(row)


def check_active_goal(user_id: str) -> Optional[Dict[str, Any]]:
    """Compare the latest weight log to the active goal's target."""
    goal = get_active_goal(user_id)
    if not goal:
        return None
    latest = get_latest_weight(user_id=user_id)
    if not latest:
        return None
    return {
        "achieved": check_goal_achievement(goal["goal"], float(latest["weight"]), float(goal["target_weight"])),
        "current_weight": float(latest["weight"]),
        "target_weight": float(goal["target_weight"]),
        "goal": goal["goal"],
    }


def get_goal_history(*, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM goal_history WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            (user_id, int(limit)),
        ).fetchall()
        return [dict(r) for r in rows]


# ---- achievements ----

def _achievement_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["bob_suggested"] = bool(data["bob_suggested"])
    data["new_goal_set"] = None if data.get("new_goal_set") is None else bool(data["new_goal_set"])
    return data


def get_latest_achievement(user_id: str) -> Optional[Dict[str, Any]]:
    """Most recent achievement Bob has not brought up yet."""
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            """
            SELECT * FROM goal_achievements WHERE user_id = ? AND bob_suggested = 0
            ORDER BY achieved_at DESC LIMIT 1
            """,
            (user_id,),
        ).fetchone()
        return _achievement_row(row) if row else None


def mark_achievement_handled(*, user_id: str, achievement_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE goal_achievements SET bob_suggested = 1 WHERE id = ? AND user_id = ?",
            (achievement_id, user_id),
        )
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Achievement not found")


def create_achievement(
    *,
    user_id: str,
    goal_type: str,
    target_weight: float,
    achieved_weight: float,
    weekly_average: float,
    days_at_goal: Optional[int] = None,
) -> str:
    with db_conn(settings.app_db_path) as conn:
        existing = conn.execute(
            "SELECT * FROM goal_achievements WHERE user_id = ? ORDER BY achieved_at DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        if (
            existing
            and existing["goal_type"] == goal_type
            and float(existing["target_weight"]) == float(target_weight)
            and not existing["bob_suggested"]
        ):
            return existing["id"]

        achievement_id = str(uuid4())
        conn.execute(
            """
            INSERT INTO goal_achievements (
                id, user_id, goal_type, target_weight, achieved_weight, weekly_average,
                achieved_at, bob_suggested, new_goal_set, days_at_goal
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 0, NULL, ?)
            """,
            (achievement_id, user_id, goal_type, float(target_weight), float(achieved_weight),
             float(weekly_average), _utc_now(), days_at_goal),
        )
        return achievement_id


def get_achievement_history(user_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM goal_achievements WHERE user_id = ? ORDER BY achieved_at DESC",
            (user_id,),
        ).fetchall()
        return [_achievement_row(r) for r in rows]


def _average_kg(logs: List[Dict[str, Any]]) -> Optional[float]:
    if not logs:
        return None
    return sum(convert_to_kg(float(entry["weight"]), entry["unit"]) for entry in logs) / len(logs)


def evaluate_achievement(*, user_id: str, today: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Weekly-average goal check; records an achievement when the goal is met.

    Returns None without a profile or without weight logs in the last 7 days.
    """
    profile = get_profile(user_id)
    if not profile:
        return None
    day = datetime.strptime(today or user_today(user_id), "%Y-%m-%d")
    fmt = "%Y-%m-%d"
    week = get_weight_logs_between(
        user_id=user_id,
        start=(day - timedelta(days=6)).strftime(fmt),
        end=day.strftime(fmt),
    )
    weekly_average = _average_kg(week)
    if weekly_average is None:
        return None
    previous = _average_kg(
        get_weight_logs_between(
            user_id=user_id,
            start=(day - timedelta(days=13)).strftime(fmt),
            end=(day - timedelta(days=7)).strftime(fmt),
        )
    )

    unit = "lbs" if profile.get("preferred_units") == "imperial" else "kg"
    target_kg = convert_to_kg(float(profile["target_weight"]), unit)
    goal = profile["goal"]
    achieved = check_goal_achievement(goal, weekly_average, target_kg, previous)

    result: Dict[str, Any] = {
        "achieved": achieved,
        "goal": goal,
        "weekly_average": round(weekly_average, 2),
        "target_weight": round(target_kg, 2),
        "achievement_id": None,
    }
    if achieved:
        latest_kg = convert_to_kg(float(week[-1]["weight"]), week[-1]["unit"])
        days_at_goal = sum(
            1
            for entry in week
            if check_goal_achievement(goal, convert_to_kg(float(entry["weight"]), entry["unit"]), target_kg)
        )
        result["achievement_id"] = create_achievement(
            user_id=user_id,
            goal_type=goal,
            target_weight=round(target_kg, 2),
            achieved_weight=round(latest_kg, 2),
            weekly_average=round(weekly_average, 2),
            days_at_goal=days_at_goal,
        )
        log.info("goal achieved for user %s (%s, avg %.2f kg)", user_id, goal, weekly_average)
    return result
