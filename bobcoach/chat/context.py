# -*- coding: utf-8 -*-
"""Chat context assembly.

Builds the per-user context the agent prompt is rendered from:
- profile summary, display mode and dietary restrictions
- today's intake against targets
- latest weight
- last messages of the conversation
- latest calorie calibration

The result is JSON-serializable and cached in the session cache under
`chat_context`; every write that changes one of the inputs drops that key.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..cache.storage import CHAT_CONTEXT_KEY, get_session_cache, set_session_cache
from ..diet.storage import get_today_stats
from ..profiles.storage import get_dietary_preferences, get_preferences, get_profile, user_today
from ..summaries.storage import get_latest_calibration
from ..weight.storage import get_latest_weight
from .storage import get_recent_messages

DEFAULT_CALORIE_TARGET = 2000
DEFAULT_PROTEIN_TARGET = 150
RECENT_MESSAGES = 10


def _profile_summary(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not profile:
        return None
    return {
        "name": profile["name"],
        "goal": profile["goal"],
        "current_weight": profile["current_weight"],
        "target_weight": profile["target_weight"],
        "daily_calorie_target": profile["daily_calorie_target"],
        "protein_target": profile["protein_target"],
        "preferred_units": profile.get("preferred_units") or "metric",
        "onboarding_completed": bool(profile.get("onboarding_completed")),
    }


def _today_progress(user_id: str, profile: Optional[Dict[str, Any]], latest: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    stats = get_today_stats(user_id=user_id)
    calorie_target = int(profile["daily_calorie_target"]) if profile else DEFAULT_CALORIE_TARGET
    protein_target = int(profile["protein_target"]) if profile else DEFAULT_PROTEIN_TARGET
    return {
        "calories_consumed": stats["calories"],
        "protein_consumed": stats["protein"],
        "calorie_target": calorie_target,
        "protein_target": protein_target,
        "calories_remaining": round(calorie_target - stats["calories"]),
        "meal_count": stats["meal_count"],
        "has_weighed_today": bool(latest and latest["date"] == user_today(user_id)),
    }


def build_chat_context(*, user_id: str, use_cache: bool = True) -> Dict[str, Any]:
    if use_cache:
        cached = get_session_cache(user_id=user_id, cache_key=CHAT_CONTEXT_KEY)
        if isinstance(cached, dict):
            return cached

    profile = get_profile(user_id)
    latest = get_latest_weight(user_id=user_id)
    calibration = get_latest_calibration(user_id=user_id)
    dietary = get_dietary_preferences(user_id)

    ctx: Dict[str, Any] = {
        "user": _profile_summary(profile),
        "display_mode": get_preferences(user_id)["display_mode"],
        "dietary": (
            {
                "restrictions": dietary["restrictions"],
                "custom_notes": dietary["custom_notes"],
                "intermittent_fasting": dietary["intermittent_fasting"],
            }
            if dietary
            else None
        ),
        "today": _today_progress(user_id, profile, latest),
        "latest_weight": (
            {"weight": latest["weight"], "unit": latest["unit"], "date": latest["date"], "trend": latest["trend"]}
            if latest
            else None
        ),
        "recent_messages": [
            {"role": m["role"], "content": m["content"]}
            for m in get_recent_messages(user_id=user_id, limit=RECENT_MESSAGES)
        ],
        "calibration": (
            {
                "date": calibration["date"],
                "old_target": calibration["old_calorie_target"],
                "new_target": calibration["new_calorie_target"],
                "reason": calibration["reason"],
            }
            if calibration and calibration["is_recent"]
            else None
        ),
    }
    set_session_cache(user_id=user_id, cache_key=CHAT_CONTEXT_KEY, data=ctx)
    return ctx
