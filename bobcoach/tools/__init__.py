# -*- coding: utf-8 -*-
"""
Diet coaching calculation tools

Pure functions shared by profiles, food logs, goals and the chat agent.
"""

from .nutrition import (
    KCAL_PER_KG,
    calculate_bmr,
    calculate_tdee,
    calculate_targets,
    compute_profile_targets,
    convert_to_kg,
    infer_meal_type,
    expected_weight_change,
    check_goal_achievement,
)

__all__ = [
    "KCAL_PER_KG",
    "calculate_bmr",
    "calculate_tdee",
    "calculate_targets",
    "compute_profile_targets",
    "convert_to_kg",
    "infer_meal_type",
    "expected_weight_change",
    "check_goal_achievement",
]
