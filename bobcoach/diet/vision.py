# -*- coding: utf-8 -*-
"""Diet — food photo analysis via the LLM vision endpoint."""

from __future__ import annotations

import ast
import base64
import json
import logging
import re
from typing import Any, Dict, List, Optional

from ..agent_service import create_message, response_text
from ..config import settings
from .models import PhotoAnalysis
from .storage import compute_totals

log = logging.getLogger(__name__)

NO_FOOD_INDICATORS = (
    "don't see any food",
    "no food items",
    "without any food",
    "not a food",
    "doesn't contain food",
    "can't identify any food",
)

_CONFIDENCE = {"low", "medium", "high"}

_PROMPT = """You are a nutrition expert. Analyze this food image and provide detailed nutritional information.
{context}
Provide a JSON response with this exact structure:
{{
  "foods": [
    {{
      "name": "food item name",
      "quantity": "estimated portion size",
      "calories": number,
      "protein": number (grams),
      "carbs": number (grams),
      "fat": number (grams),
      "confidence": "low" | "medium" | "high"
    }}
  ],
  "totalCalories": number,
  "totalProtein": number,
  "totalCarbs": number,
  "totalFat": number,
  "overallConfidence": "low" | "medium" | "high",
  "metadata": {{
    "visualDescription": "brief description of what you see",
    "platingStyle": "home-cooked" | "restaurant" | "fast-food" | "packaged",
    "portionSize": "small" | "medium" | "large"
  }}
}}

Be conservative with estimates. If unsure, provide lower confidence scores."""


def _remove_trailing_commas(text: str) -> str:
    """Drop commas directly before a closing bracket, outside string literals."""
    out: list[str] = []
    in_str = False
    escaped = False
    for i, ch in enumerate(text):
        if in_str:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            continue
        if ch == "\"":
            in_str = True
        elif ch == ",":
            rest = text[i + 1 :].lstrip(" \t\r\n")
            if rest[:1] in ("}", "]"):
                continue
        out.append(ch)
    return "".join(out)


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\s*```$", "", cleaned)


def _iter_json_object_candidates(text: str) -> list[str]:
    """Balanced {...} spans in arbitrary text, respecting string literals."""
    cleaned = _strip_fences(text)
    candidates: list[str] = []
    in_str = False
    escaped = False
    depth = 0
    start_idx: int | None = None

    for i, ch in enumerate(cleaned):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            continue
        if ch == "\"":
            in_str = True
        elif ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start_idx is not None:
                candidates.append(cleaned[start_idx : i + 1])
                start_idx = None
    return candidates


def _sanitize_json_like(text: str) -> str:
    cleaned = text.replace("“", "\"").replace("”", "\"").replace("‘", "'").replace("’", "'")
    cleaned = _remove_trailing_commas(cleaned)
    cleaned = re.sub(r"\bNaN\b", "null", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\b-?Infinity\b", "null", cleaned, flags=re.IGNORECASE)


def parse_model_json(content: str) -> Dict[str, Any]:
    """Best-effort JSON object extraction from a model reply; raises ValueError."""
    last_error: Exception | None = None
    # Largest candidate first: the analysis object wraps the per-food objects.
    for candidate in sorted(_iter_json_object_candidates(content), key=len, reverse=True):
        sanitized = _sanitize_json_like(candidate)
        for attempt in (candidate, sanitized):
            try:
                parsed = json.loads(attempt)
            except ValueError as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed
        # Python-literal-ish dicts (single quotes/None/True/False).
        py = re.sub(r"\bnull\b", "None", sanitized)
        py = re.sub(r"\btrue\b", "True", py)
        py = re.sub(r"\bfalse\b", "False", py)
        try:
            parsed = ast.literal_eval(py)
        except (ValueError, SyntaxError) as exc:
            last_error = exc
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ValueError(f"Failed to parse model JSON: {last_error or 'no JSON object found'}")


_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _coerce_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return max(0.0, float(value))
    if isinstance(value, str):
        m = _NUM_RE.search(value.replace(",", ""))
        return max(0.0, float(m.group(0))) if m else 0.0
    return 0.0


def _confidence(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip().lower() in _CONFIDENCE:
        return value.strip().lower()
    return None


def _normalize_foods(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    foods: List[Dict[str, Any]] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name") or item.get("food") or "").strip() or "unknown"
        foods.append(
            {
                "name": name,
                "quantity": str(item.get("quantity") or item.get("portion") or "1 serving"),
                "calories": _coerce_float(item.get("calories")),
                "protein": _coerce_float(item.get("protein")),
                "carbs": _coerce_float(item.get("carbs")),
                "fat": _coerce_float(item.get("fat")),
                "confidence": _confidence(item.get("confidence")),
            }
        )
    return foods


def normalize_analysis(parsed: Dict[str, Any]) -> PhotoAnalysis:
    foods = _normalize_foods(parsed.get("foods") or parsed.get("items"))
    totals = compute_totals(foods)
    metadata = parsed.get("metadata") if isinstance(parsed.get("metadata"), dict) else None
    return PhotoAnalysis(
        foods=foods,
        totals=totals,
        overall_confidence=_confidence(parsed.get("overallConfidence")) or "low",
        metadata=(
            {
                "visual_description": metadata.get("visualDescription"),
                "plating_style": metadata.get("platingStyle"),
                "portion_size": metadata.get("portionSize"),
            }
            if metadata
            else None
        ),
        warnings=parsed.get("warnings"),
    )


def is_no_food_reply(text: str) -> bool:
    lowered = text.lower()
    return any(indicator in lowered for indicator in NO_FOOD_INDICATORS)


def analyze_reply(text: str) -> PhotoAnalysis:
    if is_no_food_reply(text):
        return PhotoAnalysis(no_food=True, error="No food detected in image", description=text[:800])
    try:
        parsed = parse_model_json(text)
    except ValueError as exc:
        log.warning("food photo output parse failed: %s", exc)
        return PhotoAnalysis(
            error="Could not analyze the image. Please try again with a clearer photo.",
            description=text[:800],
        )
    return normalize_analysis(parsed)


async def analyze_food_photo(
    *,
    image_bytes: bytes,
    image_mime: str,
    context: Optional[str] = None,
) -> PhotoAnalysis:
    """Ask the vision model about a meal photo. LLM failures propagate as LLMUnavailableError."""
    media_type = "image/jpeg" if image_mime == "image/jpg" else image_mime
    prompt = _PROMPT.format(context=f"Additional context: {context}\n" if context else "")
    response = await create_message(
        system="You analyze meal photos and answer with JSON only.",
        model=settings.vision_model,
        messages=[
            {
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": media_type,
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        },
                    },
                    {"type": "text", "text": prompt},
                ],
            }
        ],
    )
    return analyze_reply(response_text(response))
