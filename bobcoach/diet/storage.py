# -*- coding: utf-8 -*-
"""Diet — food log storage (SQLite; photos are never stored)."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import db_conn
from ..cache.query_cache import CACHE_KEYS, CACHE_TTL, get_cached, query_cache
from ..cache.storage import CHAT_CONTEXT_KEY, clear_session_cache_key
from ..config import settings
from ..profiles.storage import get_profile, user_now
from ..tools import expected_weight_change, infer_meal_type
from .models import NutritionTotals


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def compute_totals(items: List[Dict[str, Any]]) -> NutritionTotals:
    calories = 0.0
    protein = 0.0
    carbs = 0.0
    fat = 0.0
    for item in items:
        calories += float(item.get("calories") or 0.0)
        protein += float(item.get("protein") or 0.0)
        carbs += float(item.get("carbs") or 0.0)
        fat += float(item.get("fat") or 0.0)
    return NutritionTotals(
        calories=round(calories, 1),
        protein=round(protein, 1),
        carbs=round(carbs, 1),
        fat=round(fat, 1),
    )


def _food_log_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["foods"] = json.loads(data.pop("foods_json") or "[]")
    data["ai_estimated"] = bool(data["ai_estimated"])
    return data


def _invalidate(user_id: str) -> None:
    query_cache.invalidate_pattern(CACHE_KEYS.today_stats_pattern(user_id))
    query_cache.invalidate(CACHE_KEYS.daily_summary(user_id))
    clear_session_cache_key(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)


def create_food_log(
    *,
    user_id: str,
    description: str,
    foods: List[Dict[str, Any]],
    meal: Optional[str] = None,
    photo_url: Optional[str] = None,
    ai_estimated: bool = False,
    confidence: str = "medium",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    local = now or user_now(user_id)
    totals = compute_totals(foods)
    log_id = str(uuid4())
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO food_logs (
                id, user_id, date, time, meal, description, foods_json, total_calories, total_protein,
                total_carbs, total_fat, photo_url, ai_estimated, confidence, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                log_id,
                user_id,
                local.strftime("%Y-%m-%d"),
                local.strftime("%H:%M"),
                meal or infer_meal_type(local.hour),
                description,
                json.dumps(foods, ensure_ascii=False),
                totals.calories,
                totals.protein,
                totals.carbs,
                totals.fat,
                photo_url,
                1 if ai_estimated else 0,
                confidence,
                _utc_now(),
            ),
        )
    _invalidate(user_id)
    return require_food_log(user_id=user_id, log_id=log_id)


def get_food_log(*, user_id: str, log_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM food_logs WHERE id = ? AND user_id = ?",
            (log_id, user_id),
        ).fetchone()
        return _food_log_row(row) if row else None


def require_food_log(*, user_id: str, log_id: str) -> Dict[str, Any]:
    row = get_food_log(user_id=user_id, log_id=log_id)
    if not row:
        raise HTTPException(status_code=404, detail="Food log not found")
    return row


def update_food_log(
    *,
    user_id: str,
    log_id: str,
    description: Optional[str] = None,
    foods: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    require_food_log(user_id=user_id, log_id=log_id)
    updates: Dict[str, Any] = {}
    if description is not None:
        updates["description"] = description
    if foods is not None:
        totals = compute_totals(foods)
        updates.update(
            foods_json=json.dumps(foods, ensure_ascii=False),
            total_calories=totals.calories,
            total_protein=totals.protein,
            total_carbs=totals.carbs,
            total_fat=totals.fat,
        )
    if updates:
        assignments = ", ".join(f"{k} = ?" for k in updates)
        with db_conn(settings.app_db_path) as conn:
            conn.execute(
                f"UPDATE food_logs SET {assignments} WHERE id = ? AND user_id = ?",
                (*updates.values(), log_id, user_id),
            )
        _invalidate(user_id)
    return require_food_log(user_id=user_id, log_id=log_id)


def delete_food_log(*, user_id: str, log_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM food_logs WHERE id = ? AND user_id = ?", (log_id, user_id))
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Food log not found")
    _invalidate(user_id)


def get_logs_range(*, user_id: str, start: str, end: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM food_logs WHERE user_id = ? AND date >= ? AND date <= ? ORDER BY date ASC, time ASC",
            (user_id, start, end),
        ).fetchall()
        return [_food_log_row(r) for r in rows]


def get_logs_by_date(*, user_id: str, date: str) -> List[Dict[str, Any]]:
    return get_logs_range(user_id=user_id, start=date, end=date)


def _sum_logs(logs: List[Dict[str, Any]]) -> Dict[str, float]:
    return {
        "calories": round(sum(float(entry["total_calories"]) for entry in logs), 1),
        "protein": round(sum(float(entry["total_protein"]) for entry in logs), 1),
        "carbs": round(sum(float(entry["total_carbs"]) for entry in logs), 1),
        "fat": round(sum(float(entry["total_fat"]) for entry in logs), 1),
    }


def get_today_stats(*, user_id: str, today: Optional[str] = None) -> Dict[str, Any]:
    day = today or user_now(user_id).strftime("%Y-%m-%d")

    def fetch() -> Dict[str, Any]:
        logs = get_logs_by_date(user_id=user_id, date=day)
        return {**_sum_logs(logs), "meal_count": len(logs)}

    if today is not None:
        return fetch()
    return dict(get_cached(CACHE_KEYS.today_stats(user_id, day), fetch, ttl=CACHE_TTL["today_stats"]))


def get_today_macros(*, user_id: str, today: Optional[str] = None) -> Dict[str, Any]:
    stats = get_today_stats(user_id=user_id, today=today)
    consumed = {k: stats[k] for k in ("calories", "protein", "carbs", "fat")}
    profile = get_profile(user_id)
    if not profile:
        return {"consumed": consumed, "targets": None, "remaining": None}

    targets = {
        "calories": profile["daily_calorie_target"],
        "protein": profile["protein_target"],
        "carbs": profile.get("carbs_target") or 0,
        "fat": profile.get("fat_target") or 0,
    }
    remaining = {k: round(targets[k] - consumed[k], 1) for k in targets}
    return {"consumed": consumed, "targets": targets, "remaining": remaining}


def get_weekly_stats(*, user_id: str, week_start: str) -> Optional[Dict[str, Any]]:
    profile = get_profile(user_id)
    if not profile:
        return None
    try:
        start = datetime.strptime(week_start, "%Y-%m-%d")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="week_start must be YYYY-MM-DD") from exc
    week_end = (start + timedelta(days=6)).strftime("%Y-%m-%d")

    logs = get_logs_range(user_id=user_id, start=week_start, end=week_end)
    total = sum(float(entry["total_calories"]) for entry in logs)
    days_with_logs = len({entry["date"] for entry in logs})
    average = total / days_with_logs if days_with_logs else 0.0
    return {
        "total_calories": round(total, 1),
        "average_calories": round(average),
        "meals_logged": len(logs),
        "days_with_logs": days_with_logs,
        "expected_weight_change": expected_weight_change(profile["daily_calorie_target"], average, 7),
    }
