# -*- coding: utf-8 -*-
"""Profiles — DB storage helpers (profile, preferences, user clock)."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import HTTPException
from pydantic import ValidationError

from ..app_db import db_conn
from ..auth.storage import update_user_name
from ..cache.query_cache import CACHE_KEYS, CACHE_TTL, get_cached, invalidate_user, query_cache
from ..cache.storage import CHAT_CONTEXT_KEY, clear_session_cache_key
from ..config import settings
from ..tools import compute_profile_targets, convert_to_kg
from .models import (
    DEFAULT_EATING_END_HOUR,
    DEFAULT_EATING_START_HOUR,
    EDITABLE_FIELDS,
    IntermittentFasting,
    ProfileUpsertRequest,
)

log = logging.getLogger(__name__)

_TARGET_INPUTS = {"current_weight", "height", "age", "gender", "activity_level", "goal", "preferred_units"}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _profile_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["onboarding_completed"] = bool(data.get("onboarding_completed"))
    return data


def _targets_for(data: Dict[str, Any]) -> Dict[str, int]:
    unit = "lbs" if data.get("preferred_units") == "imperial" else "kg"
    return compute_profile_targets(
        weight_kg=convert_to_kg(float(data["current_weight"]), unit),
        height_cm=float(data["height"]),
        age=int(data["age"]),
        gender=str(data["gender"]),
        activity_level=str(data["activity_level"]),
        goal=str(data["goal"]),
    )


def _fetch_profile(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM user_profiles WHERE user_id = ?", (user_id,)).fetchone()
        return _profile_row(row) if row else None


def get_profile(user_id: str) -> Optional[Dict[str, Any]]:
    profile = get_cached(
        CACHE_KEYS.user_profile(user_id),
        lambda: _fetch_profile(user_id),
        ttl=CACHE_TTL["user_profile"],
    )
    return dict(profile) if profile else None


def require_profile(user_id: str) -> Dict[str, Any]:
    profile = get_profile(user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


def invalidate_profile_caches(user_id: str) -> None:
    invalidate_user(user_id)
    clear_session_cache_key(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)


def upsert_profile(*, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create or replace the profile; targets are recomputed and onboarding is marked complete."""
    targets = _targets_for(data)
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        existing = conn.execute("SELECT id FROM user_profiles WHERE user_id = ?", (user_id,)).fetchone()
        values = (
            data["name"],
            float(data["current_weight"]),
            float(data["target_weight"]),
            float(data["height"]),
            int(data["age"]),
            data.get("birth_date"),
            data["gender"],
            data["activity_level"],
            data["goal"],
            targets["calories"],
            targets["protein"],
            targets["carbs"],
            targets["fat"],
            data.get("preferred_units") or "metric",
            data.get("timezone") or "UTC",
        )
        if existing:
            conn.execute(
                """
                UPDATE user_profiles SET
                    name = ?, current_weight = ?, target_weight = ?, height = ?, age = ?, birth_date = ?,
                    gender = ?, activity_level = ?, goal = ?, daily_calorie_target = ?, protein_target = ?,
                    carbs_target = ?, fat_target = ?, preferred_units = ?, timezone = ?,
                    onboarding_completed = 1, updated_at = ?
                WHERE user_id = ?
                """,
                (*values, now, user_id),
            )
        else:
            conn.execute(
                """
                INSERT INTO user_profiles (
                    id, name, current_weight, target_weight, height, age, birth_date, gender, activity_level,
                    goal, daily_calorie_target, protein_target, carbs_target, fat_target, preferred_units,
                    timezone, onboarding_completed, created_at, updated_at, user_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?)
                """,
                (str(uuid4()), *values, now, now, user_id),
            )
    invalidate_profile_caches(user_id)
    return require_profile(user_id)


def update_profile_field(*, user_id: str, field: str, value: Any) -> Dict[str, Any]:
    if field not in EDITABLE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Field '{field}' cannot be updated")
    profile = require_profile(user_id)
    profile[field] = value
    try:
        checked = ProfileUpsertRequest.model_validate({k: profile[k] for k in EDITABLE_FIELDS})
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid value for {field}") from exc
    value = getattr(checked, field)

    updates: Dict[str, Any] = {field: value}
    if field in _TARGET_INPUTS:
        targets = _targets_for(checked.model_dump())
        updates.update(
            daily_calorie_target=targets["calories"],
            protein_target=targets["protein"],
            carbs_target=targets["carbs"],
            fat_target=targets["fat"],
        )

    assignments = ", ".join(f"{k} = ?" for k in updates)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            f"UPDATE user_profiles SET {assignments}, updated_at = ? WHERE user_id = ?",
            (*updates.values(), _utc_now(), user_id),
        )

    if field == "name" and isinstance(value, str):
        update_user_name(user_id=user_id, name=value)
    invalidate_profile_caches(user_id)
    return require_profile(user_id)


def set_calorie_target(*, user_id: str, calories: int) -> None:
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "UPDATE user_profiles SET daily_calorie_target = ?, updated_at = ? WHERE user_id = ?",
            (int(calories), _utc_now(), user_id),
        )
    invalidate_profile_caches(user_id)


def set_onboarding_completed(*, user_id: str, completed: bool) -> None:
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "UPDATE user_profiles SET onboarding_completed = ?, updated_at = ? WHERE user_id = ?",
            (1 if completed else 0, _utc_now(), user_id),
        )
    invalidate_profile_caches(user_id)


def list_onboarded_user_ids() -> List[str]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute("SELECT user_id FROM user_profiles WHERE onboarding_completed = 1").fetchall()
        return [r["user_id"] for r in rows]


# ---- user clock ----

def user_timezone(user_id: str) -> ZoneInfo:
    profile = get_profile(user_id)
    name = (profile or {}).get("timezone") or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("unknown timezone %r for user %s, using UTC", name, user_id)
        return ZoneInfo("UTC")


def user_now(user_id: str) -> datetime:
    return datetime.now(user_timezone(user_id))


def user_today(user_id: str) -> str:
    return user_now(user_id).strftime("%Y-%m-%d")


# ---- preferences ----

def default_preferences(user_id: str, display_mode: str = "standard") -> Dict[str, Any]:
    visible = display_mode != "stealth"
    return {
        "user_id": user_id,
        "display_mode": display_mode,
        "show_calories": visible,
        "show_protein": True,
        "show_carbs": visible,
        "show_fats": visible,
        "language": "en",
        "dark_mode": False,
        "reminder_settings": {
            "weigh_in_reminder": True,
            "meal_reminders": False,
            "reminder_times": {"weigh_in": "08:00"},
        },
    }


def _preferences_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    for key in ("show_calories", "show_protein", "show_carbs", "show_fats", "dark_mode"):
        data[key] = bool(data[key])
    data["reminder_settings"] = json.loads(data.pop("reminder_settings_json") or "{}")
    data.pop("updated_at", None)
    return data


def _fetch_preferences(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM user_preferences WHERE user_id = ?", (user_id,)).fetchone()
        return _preferences_row(row) if row else None


def get_preferences(user_id: str) -> Dict[str, Any]:
    prefs = get_cached(
        CACHE_KEYS.preferences(user_id),
        lambda: _fetch_preferences(user_id),
        ttl=CACHE_TTL["preferences"],
    )
    return dict(prefs) if prefs else default_preferences(user_id)


def has_preferences(user_id: str) -> bool:
    return _fetch_preferences(user_id) is not None


def save_preferences(*, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    merged = {**(_fetch_preferences(user_id) or default_preferences(user_id)), **changes}
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO user_preferences (
                user_id, display_mode, show_calories, show_protein, show_carbs, show_fats,
                language, dark_mode, reminder_settings_json, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                display_mode = excluded.display_mode,
                show_calories = excluded.show_calories,
                show_protein = excluded.show_protein,
                show_carbs = excluded.show_carbs,
                show_fats = excluded.show_fats,
                language = excluded.language,
                dark_mode = excluded.dark_mode,
                reminder_settings_json = excluded.reminder_settings_json,
                updated_at = excluded.updated_at
            """,
            (
                user_id,
                merged["display_mode"],
                int(bool(merged["show_calories"])),
                int(bool(merged["show_protein"])),
                int(bool(merged["show_carbs"])),
                int(bool(merged["show_fats"])),
                merged["language"],
                int(bool(merged["dark_mode"])),
                json.dumps(merged["reminder_settings"], ensure_ascii=False),
                _utc_now(),
            ),
        )
    query_cache.invalidate(CACHE_KEYS.preferences(user_id))
    clear_session_cache_key(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)
    return get_preferences(user_id)


def toggle_display_mode(*, user_id: str) -> Dict[str, Any]:
    current = get_preferences(user_id)
    mode = "stealth" if current["display_mode"] == "standard" else "standard"
    visible = mode == "standard"
    return save_preferences(
        user_id=user_id,
        changes={"display_mode": mode, "show_calories": visible, "show_carbs": visible, "show_fats": visible},
    )


# ---- dietary preferences ----

def _dietary_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["restrictions"] = json.loads(data.pop("restrictions_json") or "[]")
    fasting = data.pop("intermittent_fasting_json")
    data["intermittent_fasting"] = json.loads(fasting) if fasting else None
    return data


def get_dietary_preferences(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM dietary_preferences WHERE user_id = ?", (user_id,)).fetchone()
        return _dietary_row(row) if row else None


def set_dietary_preferences(
    *,
    user_id: str,
    restrictions: List[str],
    custom_notes: Optional[str] = None,
    intermittent_fasting: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Replace the whole record; a disabled fasting schedule is stored as none."""
    if intermittent_fasting is not None:
        intermittent_fasting = IntermittentFasting.model_validate(intermittent_fasting).model_dump()
        if not intermittent_fasting["enabled"]:
            intermittent_fasting = None
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO dietary_preferences (
                user_id, restrictions_json, custom_notes, intermittent_fasting_json, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                restrictions_json = excluded.restrictions_json,
                custom_notes = excluded.custom_notes,
                intermittent_fasting_json = excluded.intermittent_fasting_json,
                updated_at = excluded.updated_at
            """,
            (
                user_id,
                json.dumps(list(restrictions), ensure_ascii=False),
                custom_notes,
                json.dumps(intermittent_fasting) if intermittent_fasting else None,
                now,
                now,
            ),
        )
    clear_session_cache_key(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)
    return get_dietary_preferences(user_id)


def add_dietary_restriction(*, user_id: str, restriction: str) -> Dict[str, Any]:
    current = get_dietary_preferences(user_id) or {"restrictions": []}
    restrictions = list(current["restrictions"])
    if restriction not in restrictions:
        restrictions.append(restriction)
    return set_dietary_preferences(
        user_id=user_id,
        restrictions=restrictions,
        custom_notes=current.get("custom_notes"),
        intermittent_fasting=current.get("intermittent_fasting"),
    )


def remove_dietary_restriction(*, user_id: str, restriction: str) -> Optional[Dict[str, Any]]:
    current = get_dietary_preferences(user_id)
    if current is None:
        return None
    return set_dietary_preferences(
        user_id=user_id,
        restrictions=[r for r in current["restrictions"] if r != restriction],
        custom_notes=current.get("custom_notes"),
        intermittent_fasting=current.get("intermittent_fasting"),
    )


def update_intermittent_fasting(
    *,
    user_id: str,
    enabled: bool,
    start_hour: Optional[int] = None,
    end_hour: Optional[int] = None,
    days_of_week: Optional[List[int]] = None,
) -> Dict[str, Any]:
    current = get_dietary_preferences(user_id) or {"restrictions": []}
    fasting = None
    if enabled:
        fasting = {
            "enabled": True,
            "start_hour": DEFAULT_EATING_START_HOUR if start_hour is None else start_hour,
            "end_hour": DEFAULT_EATING_END_HOUR if end_hour is None else end_hour,
            "days_of_week": days_of_week,
        }
    return set_dietary_preferences(
        user_id=user_id,
        restrictions=current["restrictions"],
        custom_notes=current.get("custom_notes"),
        intermittent_fasting=fasting,
    )


def is_in_fasting_window(fasting: Optional[Dict[str, Any]], now: datetime) -> bool:
    """True when `now` (user-local) falls outside the eating window on a fasting day."""
    if not fasting or not fasting.get("enabled"):
        return False
    days = fasting.get("days_of_week")
    # 0 = Sunday, as stored.
    if days and (now.weekday() + 1) % 7 not in days:
        return False
    start, end, hour = int(fasting["start_hour"]), int(fasting["end_hour"]), now.hour
    if end > start:
        return hour < start or hour >= end
    # Eating window crosses midnight.
    return end <= hour < start
