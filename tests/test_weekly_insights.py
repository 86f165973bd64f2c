# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from bobcoach.summaries.calibration import build_daily_data, moving_averages, plan_calibration
from bobcoach.summaries.insights import consistency_message, generate_weekly_insights, progress_status
from bobcoach.tools import expected_weight_change


def _days(n: int):
    return [f"2026-03-{d:02d}" for d in range(1, n + 1)]


class TestInsights(unittest.TestCase):
    def test_progress_status_on_a_cut(self) -> None:
        expected = expected_weight_change(2000, 1500, 7)
        self.assertAlmostEqual(expected, -0.45, places=2)
        self.assertEqual(progress_status(-0.5, expected, "cut"), "on_track")
        self.assertEqual(progress_status(-1.0, expected, "cut"), "ahead")
        self.assertEqual(progress_status(0.3, expected, "cut"), "behind")

    def test_progress_status_on_a_gain(self) -> None:
        expected = expected_weight_change(2500, 3000, 7)
        self.assertEqual(progress_status(0.9, expected, "gain"), "ahead")
        self.assertEqual(progress_status(0.0, expected, "gain"), "behind")

    def test_progress_status_direction_from_expected_change(self) -> None:
        self.assertEqual(progress_status(-1.0, -0.45), "ahead")
        self.assertEqual(progress_status(0.3, -0.45), "behind")
        self.assertEqual(progress_status(0.5, 0.0, "maintain"), "behind")
        self.assertEqual(progress_status(-0.5, 0.0, "maintain"), "behind")

    def test_insights_praise_faster_loss(self) -> None:
        text = generate_weekly_insights(
            {
                "start_weight": 80.0,
                "end_weight": 79.0,
                "weight_change": -1.0,
                "actual_weight_change": -1.0,
                "expected_weight_change": -0.45,
                "average_daily_calories": 1500,
                "target_daily_calories": 2000,
                "meals_logged": 14,
                "logging_consistency": 67,
                "weight_tracking_days": 7,
                "goal": "cut",
            }
        )
        self.assertIn("ahead of schedule", text)
        self.assertNotIn("slower than expected", text)

    def test_consistency_message(self) -> None:
        self.assertTrue(consistency_message(95).startswith("Amazing"))
        self.assertTrue(consistency_message(70).startswith("Good"))
        self.assertTrue(consistency_message(40).startswith("Let's work on"))

    def test_insights_text_with_calibration(self) -> None:
        text = generate_weekly_insights(
            {
                "start_weight": 80.0,
                "end_weight": 79.5,
                "weight_change": -0.5,
                "actual_weight_change": -0.5,
                "expected_weight_change": -0.45,
                "average_daily_calories": 1845.4,
                "target_daily_calories": 2000,
                "meals_logged": 19,
                "logging_consistency": 90,
                "weight_tracking_days": 6,
                "calibration_adjustment": {"old_target": 2000, "new_target": 1850, "reason": "Weight trending higher."},
            }
        )
        self.assertIn("- Weight: 80kg → 79.5kg (-0.5kg)", text)
        self.assertIn("Average daily calories: 1845 (target: 2000)", text)
        self.assertIn("Logged meals: 19/21 (90% consistency!)", text)
        self.assertIn("right on track", text)
        self.assertIn("Amazing consistency", text)
        self.assertIn("from 2000 → 1850 calories (-150)", text)


class TestCalibration(unittest.TestCase):
    def test_weight_is_carried_forward(self) -> None:
        dates = _days(7)
        daily = build_daily_data({d: 2000 for d in dates}, {dates[0]: 80.0})
        averages = moving_averages(daily)
        self.assertEqual(len(averages), 1)
        self.assertAlmostEqual(averages[0]["avg_weight"], 80.0)
        self.assertAlmostEqual(averages[0]["avg_calories"], 2000.0)

    def test_insufficient_data(self) -> None:
        dates = _days(7)
        none = plan_calibration(
            calorie_target=2000, calories_by_date={}, weights_by_date={}, weight_log_count=0, first_weight_kg=None
        )
        self.assertEqual(none["status"], "insufficient_data")

        short = plan_calibration(
            calorie_target=2000,
            calories_by_date={d: 2000 for d in dates[:5]},
            weights_by_date={dates[0]: 80.0},
            weight_log_count=1,
            first_weight_kg=80.0,
        )
        self.assertEqual(short["message"], "Need at least 7 days of data for calibration")

        one_window = plan_calibration(
            calorie_target=2000,
            calories_by_date={d: 2000 for d in dates},
            weights_by_date={dates[0]: 80.0},
            weight_log_count=1,
            first_weight_kg=80.0,
        )
        self.assertEqual(one_window["message"], "Need more data to calculate trend")

    def test_steady_weight_at_target_needs_no_adjustment(self) -> None:
        dates = _days(14)
        plan = plan_calibration(
            calorie_target=2000,
            calories_by_date={d: 2000 for d in dates},
            weights_by_date={d: 80.0 for d in dates},
            weight_log_count=14,
            first_weight_kg=80.0,
        )
        self.assertEqual(plan["status"], "no_adjustment_needed")
        self.assertEqual(plan["new_target"], 2000)

    def test_gaining_faster_than_expected_reduces_target(self) -> None:
        dates = _days(14)
        plan = plan_calibration(
            calorie_target=2000,
            calories_by_date={d: 2000 for d in dates},
            weights_by_date={d: 80.0 + 0.1 * i for i, d in enumerate(dates)},
            weight_log_count=14,
            first_weight_kg=80.0,
        )
        self.assertEqual(plan["status"], "calibrated")
        self.assertEqual(plan["adjustment"], -200)
        self.assertEqual(plan["new_target"], 1800)
        self.assertEqual(plan["confidence"], "high")
        self.assertFalse(plan["metrics"]["is_first_week"])

    def test_losing_faster_than_expected_raises_target(self) -> None:
        dates = _days(14)
        plan = plan_calibration(
            calorie_target=2000,
            calories_by_date={d: 2000 for d in dates},
            weights_by_date={d: 80.0 - 0.1 * i for i, d in enumerate(dates)},
            weight_log_count=14,
            first_weight_kg=80.0,
        )
        self.assertEqual(plan["adjustment"], 150)
        self.assertEqual(plan["new_target"], 2150)
        self.assertIn("lower than expected", plan["reason"])


if __name__ == "__main__":
    unittest.main()
