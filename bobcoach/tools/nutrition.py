# -*- coding: utf-8 -*-
"""
Calorie and macro calculator

Energy targets from body stats (Mifflin-St Jeor), meal inference and goal checks.
"""

from __future__ import annotations

from typing import Dict, Optional

KCAL_PER_KG = 7700
LBS_TO_KG = 0.453592

_ACTIVITY_FACTORS = {
    "sedentary": 1.2,
    "light": 1.375,
    "lightly active": 1.375,
    "moderate": 1.55,
    "moderately active": 1.55,
    "active": 1.725,
    "very active": 1.725,
}


def _mifflin_st_jeor(weight_kg: float, height_cm: float, age: int, gender: str) -> float:
    """Mifflin-St Jeor BMR"""
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    gender = (gender or "").lower()
    if gender == "male":
        return base + 5
    if gender == "female":
        return base - 161
    return base + (5 - 161) / 2


def calculate_bmr(weight_kg: float, height_cm: float, age: int, gender: str) -> float:
    """
    Basal metabolic rate in kcal/day.

    Args:
        weight_kg: body weight (kg)
        height_cm: height (cm)
        age: age in years
        gender: male/female/other (other uses the mean of both formulas)
    """
    return _mifflin_st_jeor(weight_kg, height_cm, age, gender)


def _activity_factor(activity_level: str) -> float:
    return _ACTIVITY_FACTORS.get((activity_level or "").strip().lower(), 1.2)


def calculate_tdee(bmr: float, activity_level: str) -> float:
    return bmr * _activity_factor(activity_level)


def _goal_adjustment(goal: str) -> int:
    if goal == "cut":
        return -500
    if goal == "gain":
        return 300
    return 0


def calculate_targets(tdee: float, goal: str, weight_kg: float) -> Dict[str, int]:
    """
    Daily targets for a goal.

    Protein is 0.9 g per lb of body weight; carbs take 40% and fat 30% of calories.
    """
    calories = round(tdee + _goal_adjustment(goal))
    return {
        "calories": calories,
        "protein": round(weight_kg * 2.2 * 0.9),
        "carbs": round(calories * 0.40 / 4),
        "fat": round(calories * 0.30 / 9),
    }


def compute_profile_targets(
    *,
    weight_kg: float,
    height_cm: float,
    age: int,
    gender: str,
    activity_level: str,
    goal: str,
) -> Dict[str, int]:
    bmr = calculate_bmr(weight_kg, height_cm, age, gender)
    tdee = calculate_tdee(bmr, activity_level)
    targets = calculate_targets(tdee, goal, weight_kg)
    targets["bmr"] = round(bmr)
    targets["tdee"] = round(tdee)
    return targets


def convert_to_kg(weight: float, unit: str) -> float:
    return weight * LBS_TO_KG if unit == "lbs" else weight


def infer_meal_type(hour: int) -> str:
    if hour < 11:
        return "breakfast"
    if hour < 15:
        return "lunch"
    if hour < 20:
        return "dinner"
    return "snack"


def expected_weight_change(target_calories: float, avg_calories: float, days: int = 7) -> float:
    """Expected change in kg over ``days`` at the given average intake (negative = loss)."""
    deficit = target_calories - avg_calories
    return round(-(deficit * days) / KCAL_PER_KG, 2)


def check_goal_achievement(
    goal_type: str,
    weekly_average: float,
    target_weight: float,
    previous_week_average: Optional[float] = None,
) -> bool:
    if goal_type == "cut":
        return weekly_average <= target_weight
    if goal_type == "gain":
        return weekly_average >= target_weight
    if goal_type == "maintain":
        within = abs(weekly_average - target_weight) <= 1
        if previous_week_average is not None:
            return within and abs(previous_week_average - target_weight) <= 1
        return within
    return False
