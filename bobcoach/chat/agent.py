# -*- coding: utf-8 -*-
"""Bob — the coaching agent.

A small tool-use loop over the Messages API. `run_agent` is an async generator
of events so the HTTP layer can either stream them (SSE) or collect them into
one JSON reply:

- {"type": "text", "text": ...}
- {"type": "tool_call", "id": ..., "name": ..., "input": {...}}
- {"type": "tool_result", "id": ..., "name": ..., "result": {...}}
- {"type": "done", "usage": {...}, "tool_calls": [...], ...}
"""

from __future__ import annotations

import json
import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from ..agent_service import LLMUnavailableError, create_message, response_text, response_tool_uses, response_usage
from ..config import settings
from ..confirmations.storage import confirm_pending, get_latest_pending, save_pending_confirmation
from ..diet.models import FoodItem, MealType
from ..diet.storage import compute_totals, create_food_log, get_today_stats
from ..diet.vision import analyze_food_photo
from ..profiles.storage import get_profile, is_in_fasting_window, user_now
from ..tools import infer_meal_type
from ..weight.storage import log_weight

log = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I'm having trouble connecting right now. Please try again in a moment."

_FOOD_ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "quantity": {"type": "string"},
        "calories": {"type": "number"},
        "protein": {"type": "number"},
        "carbs": {"type": "number"},
        "fat": {"type": "number"},
    },
    "required": ["name", "quantity", "calories", "protein", "carbs", "fat"],
}

_MEAL_FIELDS = {
    "description": {"type": "string", "description": "Natural description of the food"},
    "items": {"type": "array", "items": _FOOD_ITEM_SCHEMA, "description": "Breakdown of food items"},
    "mealType": {"type": "string", "enum": [m.value for m in MealType], "description": "Meal based on time of day"},
    "confidence": {"type": "string", "enum": ["low", "medium", "high"]},
}

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "confirmFood",
        "description": "Show food understanding and ask for confirmation before logging",
        "input_schema": {"type": "object", "properties": _MEAL_FIELDS, "required": ["description", "items"]},
    },
    {
        "name": "logFood",
        "description": (
            "Actually log the food after user confirmation. "
            "Items may be omitted to log the pending confirmation as proposed."
        ),
        "input_schema": {"type": "object", "properties": _MEAL_FIELDS, "required": []},
    },
    {
        "name": "logWeight",
        "description": "Log user's weight",
        "input_schema": {
            "type": "object",
            "properties": {
                "weight": {"type": "number", "description": "Weight value"},
                "unit": {"type": "string", "enum": ["kg", "lbs"]},
                "notes": {"type": "string"},
            },
            "required": ["weight", "unit"],
        },
    },
    {
        "name": "showProgress",
        "description": "Show user's daily progress and remaining calories/macros",
        "input_schema": {
            "type": "object",
            "properties": {"showDetailed": {"type": "boolean", "description": "Detailed macro breakdown"}},
            "required": [],
        },
    },
]

PHOTO_TOOL: Dict[str, Any] = {
    "name": "analyzeAndConfirmPhoto",
    "description": (
        "Analyze the attached food photo and immediately ask for confirmation. Only call this ONCE per photo."
    ),
    "input_schema": {
        "type": "object",
        "properties": {"mealContext": {"type": "string", "description": "Additional context about the meal"}},
        "required": [],
    },
}


@dataclass
class ToolContext:
    user_id: str
    thread_id: str
    image_bytes: Optional[bytes] = None
    image_mime: str = "image/jpeg"
    photo_analyzed: bool = False
    food_log_id: Optional[str] = None
    weight_log_id: Optional[str] = None
    actions: List[str] = field(default_factory=list)


# ---- prompts ----

def _dietary_lines(dietary: Optional[Dict[str, Any]], *, fasting: bool) -> List[str]:
    if not dietary:
        return []
    lines = []
    if dietary.get("restrictions"):
        lines.append(
            f"DIETARY: {', '.join(dietary['restrictions'])} - never suggest or assume foods that break these"
        )
    if dietary.get("custom_notes"):
        lines.append(f"DIET NOTES: {dietary['custom_notes']}")
    window = dietary.get("intermittent_fasting")
    if window:
        line = f"FASTING: eating window {window['start_hour']:02d}:00-{window['end_hour']:02d}:00"
        if fasting:
            line += " (fasting now: suggest meals for when the window opens)"
        lines.append(line)
    return lines


def build_system_prompt(
    ctx: Dict[str, Any],
    *,
    pending: Optional[Dict[str, Any]] = None,
    hour: int = 12,
    fasting: bool = False,
) -> str:
    user = ctx.get("user")
    if not user or not user.get("onboarding_completed"):
        return (
            "You are Bob, a friendly diet coach meeting a new user.\n"
            "Their profile is not set up yet. Welcome them warmly and help them finish onboarding: "
            "their name, current and target weight, height, age, activity level and whether they "
            "want to see calorie numbers (standard) or not (stealth).\n"
            "Ask one question at a time. Keep replies to 1-2 sentences."
        )

    today = ctx["today"]
    stealth = ctx.get("display_mode") == "stealth"
    lines = [
        f"You are Bob, {user['name']}'s friendly diet coach. Be helpful and efficient.",
        "",
        f"STATS: {today['calories_remaining']} cal left, "
        f"{round(today['protein_consumed'])}/{today['protein_target']}g protein",
    ]
    if not today.get("has_weighed_today"):
        lines.append("No weigh-in yet today.")
    lines += _dietary_lines(ctx.get("dietary"), fasting=fasting)
    if pending:
        lines.append(
            f"PENDING: \"{pending['confirmation_data'].get('description')}\" - if user says yes, logFood immediately"
        )
    calibration = ctx.get("calibration")
    if calibration:
        lines.append(
            f"CALIBRATION: Adjusted target to {calibration['new_target']} cal on {calibration['date']} "
            f"({calibration['reason']})"
        )
    lines += [
        "",
        "PERSONALITY:",
        "- Warm and supportive, but concise",
        "- Keep responses to 1-2 sentences unless asked for details",
        "- When asked for meal ideas, give 2-3 specific options immediately",
        "",
        "CORE RULES:",
        "1. Food mention → \"Let me confirm:\" + confirmFood tool",
        "2. User confirms → logFood tool + \"Logged! X calories left.\"",
        "3. Photo → analyzeAndConfirmPhoto immediately (no greeting)",
        f"4. {'Stealth mode: no numbers' if stealth else 'Include calories/macros'}",
        f"5. Current: {hour}:00 ({infer_meal_type(hour)})",
        "",
        "RELIABILITY:",
        "- ALWAYS complete logging when user confirms",
        "- NEVER say \"logged\" without using logFood tool",
        "- Use exact data from photo analysis",
    ]
    return "\n".join(lines)


def build_messages(recent: List[Dict[str, Any]], message: str) -> List[Dict[str, Any]]:
    """History + new user turn, shaped for the Messages API.

    The API wants the first turn from the user and strictly alternating roles,
    so leading assistant turns are dropped and consecutive turns merged.
    """
    turns = [{"role": m["role"], "content": m["content"]} for m in recent if m.get("content")]
    turns.append({"role": "user", "content": message})
    while turns and turns[0]["role"] != "user":
        turns.pop(0)

    merged: List[Dict[str, Any]] = []
    for turn in turns:
        if merged and merged[-1]["role"] == turn["role"]:
            merged[-1]["content"] = f"{merged[-1]['content']}\n\n{turn['content']}"
        else:
            merged.append(dict(turn))
    return merged


# ---- tools ----

def _tool_call_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"confirm_{int(time.time() * 1000)}_{suffix}"


def _meal_data(args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    items = [FoodItem.model_validate(i).model_dump() for i in (args.get("items") or [])]
    totals = compute_totals(items)
    meal = args.get("mealType")
    if meal not in {m.value for m in MealType}:
        meal = infer_meal_type(user_now(tctx.user_id).hour)
    return {
        "description": str(args.get("description") or ", ".join(i["name"] for i in items)),
        "items": items,
        "total_calories": totals.calories,
        "total_protein": totals.protein,
        "total_carbs": totals.carbs,
        "total_fat": totals.fat,
        "meal_type": meal,
        "confidence": args.get("confidence") if args.get("confidence") in {"low", "medium", "high"} else "medium",
    }


async def _confirm_food(args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    data = _meal_data(args, tctx)
    if not data["items"]:
        return {"error": "No food items to confirm"}
    confirmation_id = save_pending_confirmation(
        user_id=tctx.user_id,
        thread_id=tctx.thread_id,
        tool_call_id=_tool_call_id(),
        confirmation_data=data,
    )
    tctx.actions.append("confirm_food")
    return {**data, "confirmation_id": confirmation_id}


async def _log_food(args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    pending = get_latest_pending(user_id=tctx.user_id, thread_id=tctx.thread_id)
    if not args.get("items"):
        if not pending:
            return {"error": "Nothing to log. Use confirmFood first."}
        args = {
            "description": pending["confirmation_data"].get("description"),
            "items": pending["confirmation_data"].get("items") or [],
            "mealType": pending["confirmation_data"].get("meal_type"),
            "confidence": pending["confirmation_data"].get("confidence"),
        }
    data = _meal_data(args, tctx)
    if not data["items"]:
        return {"error": "No food items to log"}

    entry = create_food_log(
        user_id=tctx.user_id,
        description=data["description"],
        foods=data["items"],
        meal=data["meal_type"],
        ai_estimated=True,
        confidence=data["confidence"],
    )
    if pending:
        confirm_pending(user_id=tctx.user_id, confirmation_id=pending["id"])
    tctx.food_log_id = entry["id"]
    tctx.actions.append("log_food")
    return {"success": True, "log_id": entry["id"], "total_calories": entry["total_calories"]}


async def _log_weight(args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    weight = float(args["weight"])
    unit = args.get("unit") if args.get("unit") in {"kg", "lbs"} else "kg"
    if not 0 < weight <= 700:
        return {"error": f"Implausible weight: {weight}"}
    entry = log_weight(user_id=tctx.user_id, weight=weight, unit=unit, notes=args.get("notes"))
    tctx.weight_log_id = entry["id"]
    tctx.actions.append("log_weight")
    return {"success": True, "log_id": entry["id"]}


async def _show_progress(args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    profile = get_profile(tctx.user_id)
    if not profile:
        return {"summary": "No data available yet."}
    stats = get_today_stats(user_id=tctx.user_id)
    return {
        "calories": {
            "consumed": stats["calories"],
            "target": profile["daily_calorie_target"],
            "remaining": round(profile["daily_calorie_target"] - stats["calories"]),
        },
        "protein": {
            "consumed": stats["protein"],
            "target": profile["protein_target"],
            "remaining": round(profile["protein_target"] - stats["protein"]),
        },
        "carbs": stats["carbs"],
        "fat": stats["fat"],
        "meals": stats["meal_count"],
        "detailed": bool(args.get("showDetailed")),
    }


async def _analyze_and_confirm_photo(args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    if tctx.image_bytes is None:
        return {"error": "No image uploaded. Please upload an image first."}
    if tctx.photo_analyzed:
        return {"error": "Photo already analyzed. Use confirmFood to show the results."}
    tctx.photo_analyzed = True

    try:
        analysis = await analyze_food_photo(
            image_bytes=tctx.image_bytes,
            image_mime=tctx.image_mime,
            context=args.get("mealContext"),
        )
    except LLMUnavailableError as exc:
        return {"error": f"Failed to analyze photo: {exc}"}
    if analysis.error or not analysis.foods:
        return {"error": analysis.error or "Failed to analyze photo"}

    result = await _confirm_food(
        {
            "description": ", ".join(f.name for f in analysis.foods),
            "items": [f.model_dump() for f in analysis.foods],
            "confidence": analysis.overall_confidence,
        },
        tctx,
    )
    return {"analysis_complete": True, **result}


ToolFn = Callable[[Dict[str, Any], ToolContext], Awaitable[Dict[str, Any]]]

TOOL_EXECUTORS: Dict[str, ToolFn] = {
    "confirmFood": _confirm_food,
    "logFood": _log_food,
    "logWeight": _log_weight,
    "showProgress": _show_progress,
    "analyzeAndConfirmPhoto": _analyze_and_confirm_photo,
}


async def execute_tool(name: str, args: Dict[str, Any], tctx: ToolContext) -> Dict[str, Any]:
    """Run one tool; bad input comes back to the model as an error result."""
    fn = TOOL_EXECUTORS.get(name)
    if fn is None:
        return {"error": f"Unknown tool: {name}"}
    try:
        return await fn(args or {}, tctx)
    except (ValidationError, KeyError, TypeError, ValueError) as exc:
        log.warning("tool %s rejected input: %s", name, exc)
        return {"error": f"Invalid input for {name}: {exc}"}
    except HTTPException as exc:
        return {"error": str(exc.detail)}


# ---- loop ----

async def run_agent(
    *,
    ctx: Dict[str, Any],
    message: str,
    tctx: ToolContext,
) -> AsyncIterator[Dict[str, Any]]:
    """LLMUnavailableError from any model call propagates to the caller."""
    pending = get_latest_pending(user_id=tctx.user_id, thread_id=tctx.thread_id)
    now = user_now(tctx.user_id)
    fasting = is_in_fasting_window((ctx.get("dietary") or {}).get("intermittent_fasting"), now)
    system = build_system_prompt(ctx, pending=pending, hour=now.hour, fasting=fasting)
    tools = TOOLS + ([PHOTO_TOOL] if tctx.image_bytes is not None else [])
    messages = build_messages(ctx.get("recent_messages") or [], message)

    usage = {"input_tokens": 0, "output_tokens": 0}
    tool_calls: List[Dict[str, Any]] = []
    for _step in range(max(1, settings.agent_max_steps)):
        response = await create_message(system=system, messages=messages, tools=tools)
        for key, value in response_usage(response).items():
            usage[key] += value

        text = response_text(response)
        if text:
            yield {"type": "text", "text": text}

        uses = response_tool_uses(response)
        if not uses or response.get("stop_reason") != "tool_use":
            break

        messages.append({"role": "assistant", "content": response.get("content") or []})
        results: List[Dict[str, Any]] = []
        for use in uses:
            name = str(use.get("name"))
            args = use.get("input") if isinstance(use.get("input"), dict) else {}
            yield {"type": "tool_call", "id": use.get("id"), "name": name, "input": args}
            result = await execute_tool(name, args, tctx)
            tool_calls.append({"name": name, "input": args, "result": result})
            yield {"type": "tool_result", "id": use.get("id"), "name": name, "result": result}
            results.append(
                {
                    "type": "tool_result",
                    "tool_use_id": use.get("id"),
                    "content": json.dumps(result, ensure_ascii=False, default=str),
                    "is_error": "error" in result,
                }
            )
        messages.append({"role": "user", "content": results})
    else:
        log.info("agent hit the step limit (%d) for user %s", settings.agent_max_steps, tctx.user_id)

    yield {
        "type": "done",
        "usage": usage,
        "tool_calls": tool_calls,
        "action_type": tctx.actions[-1] if tctx.actions else None,
        "food_log_id": tctx.food_log_id,
        "weight_log_id": tctx.weight_log_id,
    }
