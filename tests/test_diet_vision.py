# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from bobcoach.diet.models import PhotoAnalysis
from bobcoach.diet.vision import analyze_reply, normalize_analysis, parse_model_json


class TestParseModelJson(unittest.TestCase):
    def test_fenced_json_with_trailing_commas(self) -> None:
        text = (
            "Here is the analysis:\n```json\n"
            '{"foods": [{"name": "banana", "calories": 105,},], "overallConfidence": "high",}\n'
            "```"
        )
        parsed = parse_model_json(text)
        self.assertEqual(parsed["foods"][0]["name"], "banana")
        self.assertEqual(parsed["overallConfidence"], "high")

    def test_prefers_the_outer_object(self) -> None:
        parsed = parse_model_json('{"foods": [{"name": "rice"}], "totalCalories": 200}')
        self.assertIn("foods", parsed)

    def test_python_literal_fallback(self) -> None:
        parsed = parse_model_json("{'foods': [], 'warnings': None}")
        self.assertEqual(parsed["foods"], [])

    def test_no_object_raises(self) -> None:
        with self.assertRaises(ValueError):
            parse_model_json("I could not produce JSON for this one.")


class TestNormalizeAnalysis(unittest.TestCase):
    def test_strings_and_aliases_are_coerced(self) -> None:
        analysis = normalize_analysis(
            {
                "items": [
                    {
                        "food": "rice",
                        "portion": "200g",
                        "calories": "260 kcal",
                        "protein": "5g",
                        "carbs": "57g",
                        "fat": "1.0g",
                        "confidence": 80,
                    },
                    {"name": "egg", "calories": 78, "protein": 6.3, "carbs": 0.6, "fat": 5.3, "confidence": "High"},
                    "not a food",
                ],
                "overallConfidence": "medium",
                "metadata": {"visualDescription": "rice bowl with an egg", "platingStyle": "home-cooked"},
                "warnings": "Portion is an estimate",
            }
        )
        self.assertIsInstance(analysis, PhotoAnalysis)
        self.assertEqual([f.name for f in analysis.foods], ["rice", "egg"])
        self.assertEqual(analysis.foods[0].quantity, "200g")
        self.assertIsNone(analysis.foods[0].confidence)
        self.assertEqual(analysis.foods[1].confidence, "high")
        self.assertEqual(analysis.totals.calories, 338.0)
        self.assertEqual(analysis.totals.protein, 11.3)
        self.assertEqual(analysis.overall_confidence, "medium")
        self.assertEqual(analysis.metadata.visual_description, "rice bowl with an egg")
        self.assertIsNone(analysis.metadata.portion_size)
        self.assertEqual(analysis.warnings, ["Portion is an estimate"])

    def test_totals_come_from_items_not_model(self) -> None:
        analysis = normalize_analysis({"foods": [{"name": "apple", "calories": 95}], "totalCalories": 9999})
        self.assertEqual(analysis.totals.calories, 95.0)
        self.assertEqual(analysis.overall_confidence, "low")


class TestAnalyzeReply(unittest.TestCase):
    def test_no_food_reply(self) -> None:
        result = analyze_reply("I don't see any food in this picture, it's a photo of a cat.")
        self.assertTrue(result.no_food)
        self.assertEqual(result.error, "No food detected in image")
        self.assertEqual(result.foods, [])

    def test_unparseable_reply(self) -> None:
        result = analyze_reply("Looks tasty!")
        self.assertFalse(result.no_food)
        self.assertIsNotNone(result.error)
        self.assertEqual(result.description, "Looks tasty!")

    def test_valid_reply(self) -> None:
        result = analyze_reply('{"foods": [{"name": "toast", "quantity": "2 slices", "calories": 160}]}')
        self.assertIsNone(result.error)
        self.assertEqual(result.foods[0].quantity, "2 slices")


if __name__ == "__main__":
    unittest.main()
