# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from bobcoach.tools import (
    calculate_bmr,
    calculate_targets,
    calculate_tdee,
    check_goal_achievement,
    compute_profile_targets,
    convert_to_kg,
    expected_weight_change,
    infer_meal_type,
)


class TestEnergyTargets(unittest.TestCase):
    def test_bmr_by_gender(self) -> None:
        self.assertAlmostEqual(calculate_bmr(80, 180, 30, "male"), 1780.0)
        self.assertAlmostEqual(calculate_bmr(80, 180, 30, "female"), 1614.0)
        # Mean of both formulas.
        self.assertAlmostEqual(calculate_bmr(80, 180, 30, "other"), 1697.0)

    def test_tdee_activity_factor(self) -> None:
        self.assertAlmostEqual(calculate_tdee(1780, "moderate"), 2759.0)
        self.assertAlmostEqual(calculate_tdee(1780, "Very Active"), 1780 * 1.725)
        self.assertAlmostEqual(calculate_tdee(1780, "couch"), 1780 * 1.2)

    def test_targets_for_cut(self) -> None:
        targets = calculate_targets(2759.0, "cut", 80)
        self.assertEqual(targets, {"calories": 2259, "protein": 158, "carbs": 226, "fat": 75})

    def test_targets_for_gain_and_maintain(self) -> None:
        self.assertEqual(calculate_targets(2759.0, "gain", 80)["calories"], 3059)
        self.assertEqual(calculate_targets(2759.0, "maintain", 80)["calories"], 2759)

    def test_profile_targets_include_bmr_and_tdee(self) -> None:
        targets = compute_profile_targets(
            weight_kg=80, height_cm=180, age=30, gender="male", activity_level="moderate", goal="cut"
        )
        self.assertEqual(targets["bmr"], 1780)
        self.assertEqual(targets["tdee"], 2759)
        self.assertEqual(targets["calories"], 2259)


class TestHelpers(unittest.TestCase):
    def test_convert_to_kg(self) -> None:
        self.assertAlmostEqual(convert_to_kg(100, "lbs"), 45.3592)
        self.assertEqual(convert_to_kg(80, "kg"), 80)

    def test_infer_meal_type_boundaries(self) -> None:
        self.assertEqual(infer_meal_type(7), "breakfast")
        self.assertEqual(infer_meal_type(11), "lunch")
        self.assertEqual(infer_meal_type(14), "lunch")
        self.assertEqual(infer_meal_type(15), "dinner")
        self.assertEqual(infer_meal_type(19), "dinner")
        self.assertEqual(infer_meal_type(20), "snack")

    def test_expected_weight_change_sign(self) -> None:
        # Eating over target means gain, under target means loss.
        self.assertEqual(expected_weight_change(2000, 2500, 7), 0.45)
        self.assertEqual(expected_weight_change(2000, 1500, 7), -0.45)
        self.assertEqual(expected_weight_change(2000, 2000, 7), 0.0)


class TestGoalAchievement(unittest.TestCase):
    def test_cut_and_gain(self) -> None:
        self.assertTrue(check_goal_achievement("cut", 79.0, 80.0))
        self.assertFalse(check_goal_achievement("cut", 81.0, 80.0))
        self.assertTrue(check_goal_achievement("gain", 85.0, 85.0))
        self.assertFalse(check_goal_achievement("gain", 84.0, 85.0))

    def test_maintain_needs_both_weeks_in_band(self) -> None:
        self.assertTrue(check_goal_achievement("maintain", 80.5, 80.0))
        self.assertTrue(check_goal_achievement("maintain", 80.5, 80.0, previous_week_average=79.4))
        self.assertFalse(check_goal_achievement("maintain", 80.5, 80.0, previous_week_average=82.0))

    def test_unknown_goal(self) -> None:
        self.assertFalse(check_goal_achievement("bulk", 80.0, 80.0))


if __name__ == "__main__":
    unittest.main()
