# -*- coding: utf-8 -*-
"""Onboarding — step progress and profile creation from collected answers."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..app_db import db_conn
from ..auth.storage import update_user_name
from ..config import settings
from ..profiles.models import DietaryPreferencesRequest
from ..profiles.storage import (
    get_profile,
    has_preferences,
    default_preferences,
    save_preferences,
    set_dietary_preferences,
    set_onboarding_completed,
    upsert_profile,
)
from ..weight.storage import log_weight

log = logging.getLogger(__name__)

ONBOARDING_STEPS = [
    "welcome",
    "name",
    "current_weight",
    "target_weight",
    "height_age",
    "gender",
    "activity_level",
    "display_mode",
    "dietary_preferences",
    "complete",
]

# Answers that refine an earlier step without advancing the flow.
AUXILIARY_STEPS = {"weight_unit", "height_unit", "height", "age"}

DEFAULT_WEIGHT = 70.0
DEFAULT_HEIGHT = 170.0
DEFAULT_AGE = 30


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _progress_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["responses"] = json.loads(data.pop("responses_json") or "{}")
    data["completed"] = bool(data["completed"])
    return data


def get_progress(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM onboarding_progress WHERE user_id = ?", (user_id,)).fetchone()
        return _progress_row(row) if row else None


def _write_progress(*, user_id: str, current_step: str, responses: Dict[str, Any], completed: bool) -> None:
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO onboarding_progress (user_id, current_step, responses_json, completed, started_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                current_step = excluded.current_step,
                responses_json = excluded.responses_json,
                completed = excluded.completed,
                completed_at = excluded.completed_at
            """,
            (
                user_id,
                current_step,
                json.dumps(responses, ensure_ascii=False),
                1 if completed else 0,
                now,
                now if completed else None,
            ),
        )


def start_onboarding(*, user_id: str) -> None:
    if get_progress(user_id) is None:
        _write_progress(user_id=user_id, current_step="welcome", responses={}, completed=False)


def get_status(user_id: str) -> Dict[str, Any]:
    profile = get_profile(user_id)
    if profile and profile.get("onboarding_completed"):
        return {"completed": True, "current_step": "complete", "responses": {}, "profile": profile}

    progress = get_progress(user_id)
    return {
        "completed": False,
        "current_step": (progress or {}).get("current_step") or "welcome",
        "responses": (progress or {}).get("responses") or {},
        "started_at": (progress or {}).get("started_at"),
        "profile": None,
    }


def _number(value: Any, key: str, default: float) -> float:
    if isinstance(value, dict):
        value = value.get(key)
    try:
        return float(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def _infer_goal(current: float, target: float) -> str:
    diff = target - current
    if diff < -2:
        return "cut"
    if diff > 2:
        return "gain"
    return "maintain"


def save_step(*, user_id: str, step: str, response: Any) -> Dict[str, Any]:
    progress = get_progress(user_id)
    responses = dict((progress or {}).get("responses") or {})
    responses[step] = response

    if progress is None:
        _write_progress(user_id=user_id, current_step=step, responses=responses, completed=False)
    elif step in AUXILIARY_STEPS:
        _write_progress(
            user_id=user_id,
            current_step=progress["current_step"],
            responses=responses,
            completed=progress["completed"],
        )
    else:
        if step in ONBOARDING_STEPS:
            index = ONBOARDING_STEPS.index(step)
            next_step = ONBOARDING_STEPS[index + 1] if index + 1 < len(ONBOARDING_STEPS) else "complete"
        else:
            next_step = "complete"

        if step == "target_weight" and responses.get("current_weight") and response:
            current = _number(responses["current_weight"], "weight", DEFAULT_WEIGHT)
            target = _number(response, "weight", current)
            responses["goal"] = _infer_goal(current, target)
            responses["goal_inferred"] = True

        _write_progress(
            user_id=user_id,
            current_step=next_step,
            responses=responses,
            completed=next_step == "complete",
        )

    if step == "dietary_preferences":
        _create_profile_from_responses(user_id=user_id, responses=responses)
        _write_progress(user_id=user_id, current_step="complete", responses=responses, completed=True)

    return get_status(user_id)


def _profile_data(responses: Dict[str, Any]) -> Dict[str, Any]:
    current = responses.get("current_weight")
    weight = _number(current, "weight", DEFAULT_WEIGHT)
    unit = current.get("unit") if isinstance(current, dict) else None
    height_age = responses.get("height_age") or {}
    height = _number(responses.get("height") or height_age, "height", DEFAULT_HEIGHT)
    age = int(_number(responses.get("age") or height_age, "age", DEFAULT_AGE))
    return {
        "name": str(responses.get("name") or "Friend"),
        "current_weight": weight,
        "target_weight": _number(responses.get("target_weight"), "weight", weight),
        "height": height,
        "age": age,
        "gender": responses.get("gender") or "other",
        "activity_level": responses.get("activity_level") or "moderate",
        "goal": responses.get("goal") or "maintain",
        "preferred_units": "imperial" if unit == "lbs" else "metric",
        "timezone": responses.get("timezone") or "UTC",
        "weight_unit": "lbs" if unit == "lbs" else "kg",
    }


def _ensure_preferences(user_id: str, display_mode: Any) -> None:
    if has_preferences(user_id):
        return
    mode = "stealth" if display_mode == "stealth" else "standard"
    prefs = default_preferences(user_id, mode)
    prefs.pop("user_id")
    save_preferences(user_id=user_id, changes=prefs)


def _parse_dietary(response: Any) -> Optional[DietaryPreferencesRequest]:
    """Onboarding answer: an object, its JSON text, a comma list, or `skip_preferences`."""
    if response in (None, "", "skip_preferences"):
        return None
    if isinstance(response, str):
        try:
            response = json.loads(response)
        except ValueError:
            response = {"restrictions": [part for part in response.split(",") if part.strip()]}
    if isinstance(response, list):
        response = {"restrictions": response}
    if not isinstance(response, dict):
        return None
    cleaned = {k: v for k, v in response.items() if not str(k).startswith("_")}
    try:
        return DietaryPreferencesRequest.model_validate(cleaned)
    except ValidationError as exc:
        log.warning("ignoring unreadable dietary preferences answer: %s", exc)
        return None


def _save_dietary(user_id: str, response: Any) -> None:
    prefs = _parse_dietary(response)
    if prefs is None:
        return
    set_dietary_preferences(
        user_id=user_id,
        restrictions=prefs.restrictions,
        custom_notes=prefs.custom_notes,
        intermittent_fasting=prefs.intermittent_fasting.model_dump() if prefs.intermittent_fasting else None,
    )


def _create_profile_from_responses(*, user_id: str, responses: Dict[str, Any]) -> Dict[str, Any]:
    data = _profile_data(responses)
    profile = upsert_profile(user_id=user_id, data=data)
    _ensure_preferences(user_id, responses.get("display_mode"))
    _save_dietary(user_id, responses.get("dietary_preferences"))
    log_weight(user_id=user_id, weight=data["current_weight"], unit=data["weight_unit"], notes="Starting weight")
    if responses.get("name"):
        update_user_name(user_id=user_id, name=str(responses["name"]))
    log.info("profile created from onboarding for user %s", user_id)
    return profile


def force_complete(*, user_id: str) -> Dict[str, Any]:
    progress = get_progress(user_id)
    if not progress:
        return {"error": "No onboarding progress found"}

    r = progress["responses"]
    if not r.get("name") or not r.get("current_weight") or not r.get("display_mode"):
        return {"error": "Missing required onboarding data"}

    if get_profile(user_id) is None:
        data = _profile_data(r)
        upsert_profile(user_id=user_id, data=data)
        _ensure_preferences(user_id, r.get("display_mode"))
        _save_dietary(user_id, r.get("dietary_preferences"))
    else:
        set_onboarding_completed(user_id=user_id, completed=True)

    _write_progress(user_id=user_id, current_step="complete", responses=r, completed=True)
    update_user_name(user_id=user_id, name=str(r["name"]))
    return {"success": True, "message": "Onboarding force completed"}


def reset_onboarding(*, user_id: str) -> Dict[str, Any]:
    """Restart the flow; profile data and logs are kept."""
    with db_conn(settings.app_db_path) as conn:
        conn.execute("DELETE FROM onboarding_progress WHERE user_id = ?", (user_id,))
    if get_profile(user_id) is not None:
        set_onboarding_completed(user_id=user_id, completed=False)
    return {"reset": True, "message": "Onboarding restarted"}
