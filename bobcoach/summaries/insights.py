# -*- coding: utf-8 -*-
"""Weekly summary insight text."""

from __future__ import annotations

from typing import Any, Dict, Optional

MEALS_PER_WEEK = 21
TOLERANCE_KG = 0.2


def _goal_direction(goal: Optional[str], expected_change: float) -> int:
    if goal == "cut":
        return -1
    if goal == "gain":
        return 1
    return (expected_change > 0) - (expected_change < 0)


def progress_status(actual_change: float, expected_change: float, goal: Optional[str] = None) -> str:
    """`on_track`, `ahead` or `behind`, with a 0.2 kg tolerance band.

    Changes are signed (negative = loss). Ahead means further along in the
    goal direction than expected; without a direction any drift is behind.
    """
    difference = actual_change - expected_change
    if abs(difference) < TOLERANCE_KG:
        return "on_track"
    if difference * _goal_direction(goal, expected_change) > 0:
        return "ahead"
    return "behind"


_PROGRESS_MESSAGES = {
    "on_track": "You're right on track! Your progress matches expectations perfectly.",
    "ahead": "You're ahead of schedule! Great job, but let's ensure it's sustainable.",
    "behind": "Progress is slower than expected, but that's okay! Let's fine-tune your approach.",
}


def consistency_message(logging_consistency: float) -> str:
    if logging_consistency >= 90:
        return "Amazing consistency with logging!"
    if logging_consistency >= 70:
        return "Good logging consistency!"
    return "Let's work on more consistent logging."


def _signed(value: float, fmt: str = "{:.1f}") -> str:
    text = fmt.format(value)
    return f"+{text}" if value > 0 else text


def generate_weekly_insights(stats: Dict[str, Any]) -> str:
    status = progress_status(
        float(stats["actual_weight_change"]),
        float(stats["expected_weight_change"]),
        stats.get("goal"),
    )

    calibration = ""
    adjustment = stats.get("calibration_adjustment")
    if adjustment:
        old_target = int(adjustment["old_target"])
        new_target = int(adjustment["new_target"])
        calibration = (
            "\n\n🔧 Calibration Update:\n"
            f"I'm adjusting your daily target from {old_target} → {new_target} calories "
            f"({_signed(new_target - old_target, '{:d}')}). {adjustment['reason']}"
        )

    return (
        "📊 Your Progress:\n"
        f"- Weight: {stats['start_weight']:g}kg → {stats['end_weight']:g}kg "
        f"({_signed(float(stats['weight_change']))}kg)\n"
        f"- Average daily calories: {round(float(stats['average_daily_calories']))} "
        f"(target: {stats['target_daily_calories']})\n"
        f"- Logged meals: {stats['meals_logged']}/{MEALS_PER_WEEK} ({stats['logging_consistency']:g}% consistency!)\n"
        f"- Weight tracked: {stats['weight_tracking_days']}/7 days\n"
        "\n💡 Insights:\n"
        f"{_PROGRESS_MESSAGES[status]} {consistency_message(float(stats['logging_consistency']))}{calibration}\n"
        "\nKeep up the great work! 💪"
    )
