# -*- coding: utf-8 -*-
"""Summaries — weekly summaries and calibration history (SQLite)."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import db_conn
from ..config import settings
from ..diet.storage import get_logs_range
from ..monitoring import track_error
from ..profiles.storage import get_profile, list_onboarded_user_ids, set_calorie_target, user_today
from ..tools import convert_to_kg, expected_weight_change
from ..weight.storage import get_weight_logs_between
from .calibration import LOOKBACK_DAYS, plan_calibration
from .insights import MEALS_PER_WEEK, generate_weekly_insights

log = logging.getLogger(__name__)

_FMT = "%Y-%m-%d"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_date(value: str, field: str) -> datetime:
    try:
        return datetime.strptime(value, _FMT)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"{field} must be YYYY-MM-DD") from exc


def _summary_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["stats"] = json.loads(data.pop("stats_json") or "{}")
    return data


# ---- weekly summaries ----

def save_weekly_summary(*, user_id: str, stats: Dict[str, Any]) -> Dict[str, Any]:
    """Upsert the summary for `stats["week_start_date"]`; insights are regenerated."""
    insights = generate_weekly_insights(stats)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO weekly_summaries (id, user_id, week_start_date, week_end_date, stats_json, insights, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, week_start_date) DO UPDATE SET
                week_end_date = excluded.week_end_date,
                stats_json = excluded.stats_json,
                insights = excluded.insights,
                created_at = excluded.created_at
            """,
            (
                str(uuid4()),
                user_id,
                stats["week_start_date"],
                stats["week_end_date"],
                json.dumps(stats, ensure_ascii=False),
                insights,
                _utc_now(),
            ),
        )
        row = conn.execute(
            "SELECT * FROM weekly_summaries WHERE user_id = ? AND week_start_date = ?",
            (user_id, stats["week_start_date"]),
        ).fetchone()
        return _summary_row(row)


def list_weekly_summaries(*, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM weekly_summaries WHERE user_id = ? ORDER BY week_start_date DESC LIMIT ?",
            (user_id, int(limit)),
        ).fetchall()
        return [_summary_row(r) for r in rows]


def get_latest_weekly_summary(user_id: str) -> Optional[Dict[str, Any]]:
    items = list_weekly_summaries(user_id=user_id, limit=1)
    return items[0] if items else None


def build_week_stats(*, user_id: str, week_start: str) -> Optional[Dict[str, Any]]:
    """Stats for the 7 days from `week_start`; None without a profile."""
    profile = get_profile(user_id)
    if not profile:
        return None
    start = _parse_date(week_start, "week_start")
    week_end = (start + timedelta(days=6)).strftime(_FMT)

    weights = [
        convert_to_kg(float(entry["weight"]), entry["unit"])
        for entry in get_weight_logs_between(user_id=user_id, start=week_start, end=week_end)
    ]
    if weights:
        start_weight, end_weight = weights[0], weights[-1]
    else:
        unit = "lbs" if profile.get("preferred_units") == "imperial" else "kg"
        start_weight = end_weight = convert_to_kg(float(profile["current_weight"]), unit)

    food_logs = get_logs_range(user_id=user_id, start=week_start, end=week_end)
    days_logged = len({entry["date"] for entry in food_logs})
    total_calories = sum(float(entry["total_calories"]) for entry in food_logs)
    average_calories = total_calories / days_logged if days_logged else 0.0
    target = int(profile["daily_calorie_target"])
    consistency = min(100, round(len(food_logs) / MEALS_PER_WEEK * 100))
    weight_change = round(end_weight - start_weight, 2)

    return {
        "week_start_date": week_start,
        "week_end_date": week_end,
        "start_weight": round(start_weight, 1),
        "end_weight": round(end_weight, 1),
        "weight_change": weight_change,
        "average_daily_calories": round(average_calories),
        "target_daily_calories": target,
        "meals_logged": len(food_logs),
        "total_meals_possible": MEALS_PER_WEEK,
        "logging_consistency": consistency,
        "weight_tracking_days": len(weights),
        "expected_weight_change": expected_weight_change(target, average_calories, 7) if days_logged else 0.0,
        "actual_weight_change": weight_change,
        "goal": profile["goal"],
        "calibration_adjustment": _calibration_in_range(user_id=user_id, start=week_start, end=week_end),
    }


def generate_weekly_summary(*, user_id: str, week_start: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Build and save the summary; defaults to the week that ended yesterday."""
    if week_start is None:
        today = datetime.strptime(user_today(user_id), _FMT)
        week_start = (today - timedelta(days=7)).strftime(_FMT)
    stats = build_week_stats(user_id=user_id, week_start=week_start)
    if stats is None:
        return None
    return save_weekly_summary(user_id=user_id, stats=stats)


# ---- calibration ----

def _calibration_in_range(*, user_id: str, start: str, end: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            """
            SELECT * FROM calibration_history WHERE user_id = ? AND date >= ? AND date <= ?
            ORDER BY created_at DESC LIMIT 1
            """,
            (user_id, start, end),
        ).fetchone()
    if not row:
        return None
    return {"old_target": row["old_calorie_target"], "new_target": row["new_calorie_target"], "reason": row["reason"]}


def calibrate_user(*, user_id: str, today: Optional[str] = None) -> Optional[Dict[str, Any]]:
    profile = get_profile(user_id)
    if not profile:
        return None
    day = today or user_today(user_id)
    since = (datetime.strptime(day, _FMT) - timedelta(days=LOOKBACK_DAYS)).strftime(_FMT)

    weight_logs = get_weight_logs_between(user_id=user_id, start=since, end=day)
    # One log per day, so the date map keeps every entry.
    weights_by_date = {entry["date"]: convert_to_kg(float(entry["weight"]), entry["unit"]) for entry in weight_logs}
    calories_by_date: Dict[str, float] = {}
    for entry in get_logs_range(user_id=user_id, start=since, end=day):
        calories_by_date[entry["date"]] = calories_by_date.get(entry["date"], 0.0) + float(entry["total_calories"])

    result = plan_calibration(
        calorie_target=int(profile["daily_calorie_target"]),
        calories_by_date=calories_by_date,
        weights_by_date=weights_by_date,
        weight_log_count=len(weight_logs),
        first_weight_kg=weights_by_date[weight_logs[0]["date"]] if weight_logs else None,
    )
    if result["status"] != "calibrated":
        return result

    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO calibration_history (
                id, user_id, date, old_calorie_target, new_calorie_target, reason,
                data_points_analyzed, confidence, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(uuid4()),
                user_id,
                day,
                result["old_target"],
                result["new_target"],
                result["reason"],
                result["metrics"]["period_days"],
                result["confidence"],
                _utc_now(),
            ),
        )
    set_calorie_target(user_id=user_id, calories=result["new_target"])
    log.info("calibrated user %s: %d -> %d kcal", user_id, result["old_target"], result["new_target"])
    return result


def get_calibration_history(*, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM calibration_history WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            (user_id, int(limit)),
        ).fetchall()
        return [dict(r) for r in rows]


def get_latest_calibration(*, user_id: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    items = get_calibration_history(user_id=user_id, limit=1)
    if not items:
        return None
    latest = items[0]
    created = datetime.fromisoformat(latest["created_at"].replace("Z", "+00:00"))
    age = (now or datetime.now(timezone.utc)) - created
    latest["is_recent"] = age < timedelta(days=14)
    latest["weeks_since"] = age.days // 7
    latest["adjustment"] = {
        "old_target": latest["old_calorie_target"],
        "new_target": latest["new_calorie_target"],
        "reason": latest["reason"],
    }
    return latest


def run_weekly_calibration() -> int:
    """Calibrate every onboarded user; one user's failure does not stop the rest."""
    calibrated = 0
    for user_id in list_onboarded_user_ids():
        try:
            result = calibrate_user(user_id=user_id)
        except Exception as exc:
            track_error(exc, user_id=user_id, context={"task": "weekly_calibration"})
            continue
        if result and result["status"] == "calibrated":
            calibrated += 1
    return calibrated
