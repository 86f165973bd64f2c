# -*- coding: utf-8 -*-
"""Calorie-target calibration from 7-day moving averages.

Pure functions; `storage.calibrate_user` feeds them from the logs and applies
the result.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..tools import KCAL_PER_KG, expected_weight_change

WINDOW_DAYS = 7
LOOKBACK_DAYS = 14
TOLERANCE_KG = 0.2
MAX_DECREASE = 200
MAX_INCREASE = 150


def build_daily_data(
    calories_by_date: Dict[str, float],
    weights_by_date: Dict[str, float],
) -> Dict[str, Dict[str, Any]]:
    """Merge per-day calories and weights (kg); days with only one of them still count."""
    daily: Dict[str, Dict[str, Any]] = {}
    for date, calories in calories_by_date.items():
        daily.setdefault(date, {"calories": 0.0, "weight": None})["calories"] = float(calories)
    for date, weight in weights_by_date.items():
        daily.setdefault(date, {"calories": 0.0, "weight": None})["weight"] = float(weight)
    return daily


def moving_averages(daily: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    dates = sorted(daily)
    averages: List[Dict[str, Any]] = []
    for i in range(WINDOW_DAYS - 1, len(dates)):
        weights: List[float] = []
        calorie_sum = 0.0
        for j in range(i - WINDOW_DAYS + 1, i + 1):
            day = daily[dates[j]]
            calorie_sum += day["calories"] or 0.0
            weight = day["weight"]
            if not weight:
                # Carry the last known weight forward.
                for k in range(j - 1, -1, -1):
                    if daily[dates[k]]["weight"]:
                        weight = daily[dates[k]]["weight"]
                        break
            if weight:
                weights.append(weight)
        if weights:
            averages.append(
                {
                    "date": dates[i],
                    "avg_weight": sum(weights) / len(weights),
                    "avg_calories": calorie_sum / WINDOW_DAYS,
                }
            )
    return averages


def _insufficient(message: str) -> Dict[str, Any]:
    return {"status": "insufficient_data", "message": message}


def plan_calibration(
    *,
    calorie_target: int,
    calories_by_date: Dict[str, float],
    weights_by_date: Dict[str, float],
    weight_log_count: int,
    first_weight_kg: Optional[float],
) -> Dict[str, Any]:
    """Decide whether the calorie target should move, and by how much.

    Weight changes are signed the same way as `expected_weight_change`:
    negative means loss.
    """
    if weight_log_count < 1 or first_weight_kg is None:
        return _insufficient("Need at least 1 weight entry to start calibration")

    daily = build_daily_data(calories_by_date, weights_by_date)
    if len(daily) < WINDOW_DAYS:
        return _insufficient("Need at least 7 days of data for calibration")

    averages = moving_averages(daily)
    if len(averages) < 2:
        return _insufficient("Need more data to calculate trend")

    is_first_week = weight_log_count < WINDOW_DAYS
    if is_first_week:
        start_weight = first_weight_kg
        period_days = WINDOW_DAYS
    else:
        start_weight = averages[0]["avg_weight"]
        period_days = len(averages)
    end_weight = averages[-1]["avg_weight"]
    avg_calories = averages[-1]["avg_calories"]

    actual = end_weight - start_weight
    expected = expected_weight_change(calorie_target, avg_calories, period_days)
    difference = actual - expected
    trend = "Weight trending" if is_first_week else "7-day average shows"

    adjustment = 0
    confidence = "high"
    if abs(difference) < TOLERANCE_KG:
        reason = (
            "Weight trend matches expected. No adjustment needed."
            if is_first_week
            else "7-day average weight change matches expected. No adjustment needed."
        )
    elif difference > 0:
        adjustment = -min(round(difference * KCAL_PER_KG / period_days), MAX_DECREASE)
        reason = f"{trend} {abs(difference):.1f}kg higher than expected. Reducing calorie target."
        confidence = "high" if difference > 0.5 else "medium"
    else:
        adjustment = min(round(abs(difference) * KCAL_PER_KG / period_days), MAX_INCREASE)
        reason = f"{trend} {abs(difference):.1f}kg lower than expected. Increasing calorie target."
        confidence = "high" if abs(difference) > 0.5 else "medium"

    return {
        "status": "calibrated" if adjustment else "no_adjustment_needed",
        "old_target": int(calorie_target),
        "new_target": int(calorie_target) + adjustment,
        "adjustment": adjustment,
        "reason": reason,
        "confidence": confidence,
        "metrics": {
            "avg_daily_calories": round(avg_calories, 1),
            "actual_weight_change": round(actual, 2),
            "expected_weight_change": round(expected, 2),
            "period_days": period_days,
            "start_weight": round(start_weight, 2),
            "end_weight": round(end_weight, 2),
            "is_first_week": is_first_week,
            "moving_average_count": len(averages),
        },
    }
