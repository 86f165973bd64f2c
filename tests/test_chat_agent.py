# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import base64
import os
import shutil
import sys
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

from bobcoach.chat.agent import ToolContext, build_messages, build_system_prompt, execute_tool
from bobcoach.profiles.storage import is_in_fasting_window

PROFILE = {
    "name": "Sam",
    "current_weight": 80,
    "target_weight": 75,
    "height": 180,
    "age": 30,
    "gender": "male",
    "activity_level": "moderate",
    "goal": "cut",
}

EGGS = {
    "description": "2 eggs",
    "items": [{"name": "egg", "quantity": "2 large", "calories": 156, "protein": 12.6, "carbs": 1.2, "fat": 10.6}],
    "mealType": "breakfast",
}


def _reply(*blocks, stop_reason="end_turn", tokens=(10, 5)):
    return {
        "content": list(blocks),
        "stop_reason": stop_reason,
        "usage": {"input_tokens": tokens[0], "output_tokens": tokens[1]},
    }


def _text(text):
    return {"type": "text", "text": text}


def _tool_use(tool_id, name, args):
    return {"type": "tool_use", "id": tool_id, "name": name, "input": args}


class TestPromptAndMessages(unittest.TestCase):
    def test_messages_start_with_user_and_alternate(self) -> None:
        recent = [
            {"role": "assistant", "content": "Welcome back!"},
            {"role": "user", "content": "had eggs"},
            {"role": "user", "content": "and toast"},
            {"role": "assistant", "content": "Let me confirm:"},
            {"role": "assistant", "content": ""},
        ]
        self.assertEqual(
            build_messages(recent, "yes"),
            [
                {"role": "user", "content": "had eggs\n\nand toast"},
                {"role": "assistant", "content": "Let me confirm:"},
                {"role": "user", "content": "yes"},
            ],
        )

    def test_onboarding_prompt_without_profile(self) -> None:
        prompt = build_system_prompt({"user": None})
        self.assertIn("meeting a new user", prompt)
        self.assertNotIn("STATS", prompt)

    def test_coaching_prompt(self) -> None:
        ctx = {
            "user": {"name": "Sam", "onboarding_completed": True},
            "display_mode": "stealth",
            "today": {
                "calories_remaining": 1854,
                "protein_consumed": 40.4,
                "protein_target": 158,
                "has_weighed_today": False,
            },
            "calibration": {"new_target": 2059, "date": "2026-03-01", "reason": "Reducing calorie target."},
        }
        prompt = build_system_prompt(ctx, pending={"confirmation_data": {"description": "2 eggs"}}, hour=8)
        self.assertIn("Sam's friendly diet coach", prompt)
        self.assertIn("STATS: 1854 cal left, 40/158g protein", prompt)
        self.assertIn("No weigh-in yet today.", prompt)
        self.assertIn('PENDING: "2 eggs"', prompt)
        self.assertIn("CALIBRATION: Adjusted target to 2059 cal on 2026-03-01", prompt)
        self.assertIn("Stealth mode: no numbers", prompt)
        self.assertIn("Current: 8:00 (breakfast)", prompt)
        self.assertNotIn("DIETARY", prompt)

    def test_coaching_prompt_carries_dietary_preferences(self) -> None:
        ctx = {
            "user": {"name": "Sam", "onboarding_completed": True},
            "display_mode": "standard",
            "today": {"calories_remaining": 2000, "protein_consumed": 0, "protein_target": 158, "has_weighed_today": True},
            "dietary": {
                "restrictions": ["vegan", "gluten-free"],
                "custom_notes": "no cilantro",
                "intermittent_fasting": {"enabled": True, "start_hour": 12, "end_hour": 20, "days_of_week": None},
            },
        }
        prompt = build_system_prompt(ctx, hour=9, fasting=True)
        self.assertIn("DIETARY: vegan, gluten-free", prompt)
        self.assertIn("DIET NOTES: no cilantro", prompt)
        self.assertIn("FASTING: eating window 12:00-20:00 (fasting now", prompt)

        prompt = build_system_prompt(ctx, hour=13)
        self.assertIn("FASTING: eating window 12:00-20:00", prompt)
        self.assertNotIn("fasting now", prompt)

    def test_bad_tool_input_becomes_error_result(self) -> None:
        tctx = ToolContext(user_id="u1", thread_id="t1")
        result = asyncio.run(execute_tool("logWeight", {"weight": "heavy", "unit": "kg"}, tctx))
        self.assertIn("Invalid input for logWeight", result["error"])
        result = asyncio.run(execute_tool("orderPizza", {}, tctx))
        self.assertEqual(result["error"], "Unknown tool: orderPizza")
        result = asyncio.run(execute_tool("analyzeAndConfirmPhoto", {}, tctx))
        self.assertIn("No image uploaded", result["error"])


class TestFastingWindow(unittest.TestCase):
    WINDOW = {"enabled": True, "start_hour": 12, "end_hour": 20, "days_of_week": None}

    def test_outside_the_eating_window_is_fasting(self) -> None:
        # 2026-03-02 is a Monday.
        self.assertTrue(is_in_fasting_window(self.WINDOW, datetime(2026, 3, 2, 9)))
        self.assertFalse(is_in_fasting_window(self.WINDOW, datetime(2026, 3, 2, 12)))
        self.assertTrue(is_in_fasting_window(self.WINDOW, datetime(2026, 3, 2, 20)))
        self.assertFalse(is_in_fasting_window(None, datetime(2026, 3, 2, 9)))
        self.assertFalse(is_in_fasting_window({**self.WINDOW, "enabled": False}, datetime(2026, 3, 2, 9)))

    def test_window_across_midnight(self) -> None:
        late = {**self.WINDOW, "start_hour": 20, "end_hour": 4}
        self.assertFalse(is_in_fasting_window(late, datetime(2026, 3, 2, 22)))
        self.assertFalse(is_in_fasting_window(late, datetime(2026, 3, 2, 2)))
        self.assertTrue(is_in_fasting_window(late, datetime(2026, 3, 2, 10)))

    def test_only_listed_days_fast(self) -> None:
        weekdays = {**self.WINDOW, "days_of_week": [1, 2, 3, 4, 5]}
        self.assertTrue(is_in_fasting_window(weekdays, datetime(2026, 3, 2, 9)))
        # Sunday is 0.
        self.assertFalse(is_in_fasting_window(weekdays, datetime(2026, 3, 1, 9)))


class TestChatAgentApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="bobcoach-agent-test-"))
        data_root = cls._tmp / "data"
        os.environ["BOB_DATA_ROOT"] = str(data_root)
        os.environ["BOB_DB_PATH"] = str(data_root / "bob.db")
        os.environ["BOB_JWT_SECRET"] = "test-secret"
        os.environ["BOB_MAINTENANCE_INTERVAL_SEC"] = "0"
        os.environ.pop("ANTHROPIC_API_KEY", None)
        os.environ.pop("SENTRY_DSN", None)

        for name in list(sys.modules.keys()):
            if name == "bobcoach" or name.startswith("bobcoach."):
                sys.modules.pop(name, None)

        from bobcoach.api import app  # noqa: WPS433 (import inside test for env control)

        cls.app = app
        cls._clients = []

    @classmethod
    def tearDownClass(cls) -> None:
        for client in cls._clients:
            client.close()
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def setUp(self) -> None:
        patcher = mock.patch("bobcoach.chat.api.llm_configured", return_value=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _signup(self, email: str) -> TestClient:
        client = TestClient(self.app)
        self._clients.append(client)
        resp = client.post("/api/auth/register", json={"email": email, "password": "password123"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(client.put("/api/profile", json=PROFILE).status_code, 200)
        return client

    def _llm(self, *responses):
        patcher = mock.patch("bobcoach.chat.agent.create_message", new=mock.AsyncMock(side_effect=list(responses)))
        llm = patcher.start()
        self.addCleanup(patcher.stop)
        return llm

    def test_confirm_then_log_food(self) -> None:
        client = self._signup("agent-food@example.com")
        llm = self._llm(
            _reply(_text("Let me confirm:"), _tool_use("tu_1", "confirmFood", EGGS), stop_reason="tool_use"),
            _reply(_text("2 eggs, 156 cal. Log it?")),
            _reply(_tool_use("tu_2", "logFood", {}), stop_reason="tool_use"),
            _reply(_text("Logged! 2103 calories left.")),
        )

        resp = client.post("/api/chat/message", json={"content": "I had 2 eggs"})
        self.assertEqual(resp.status_code, 200, resp.text)
        payload = resp.json()
        self.assertFalse(payload["degraded"])
        self.assertEqual(payload["answer"], "Let me confirm:\n\n2 eggs, 156 cal. Log it?")
        self.assertEqual([c["name"] for c in payload["tool_calls"]], ["confirmFood"])
        self.assertEqual(payload["usage"], {"input_tokens": 20, "output_tokens": 10})

        first_call = llm.await_args_list[0].kwargs
        self.assertIn("STATS:", first_call["system"])
        self.assertNotIn("analyzeAndConfirmPhoto", [t["name"] for t in first_call["tools"]])
        self.assertEqual(first_call["messages"][0], {"role": "user", "content": "I had 2 eggs"})

        thread_id = payload["thread_id"]
        pending = client.get(f"/api/confirmations/pending/{thread_id}").json()
        self.assertEqual(pending["confirmation_data"]["description"], "2 eggs")
        self.assertEqual(pending["confirmation_data"]["total_calories"], 156.0)

        resp = client.post("/api/chat/message", json={"content": "yes"})
        payload = resp.json()
        self.assertEqual(payload["answer"], "Logged! 2103 calories left.")
        self.assertIsNone(client.get(f"/api/confirmations/pending/{thread_id}").json())

        today = client.get("/api/diet/today").json()
        self.assertEqual(today["calories"], 156.0)
        self.assertEqual(today["meal_count"], 1)

        history = client.get("/api/chat/history").json()["items"]
        self.assertEqual(len(history), 4)
        self.assertEqual(history[-1]["metadata"]["action_type"], "log_food")
        self.assertTrue(history[-1]["metadata"]["food_log_id"])

        usage = client.get("/api/usage").json()
        self.assertEqual(usage["today"]["chats"]["used"], 2)
        self.assertEqual(usage["model_usage"]["sonnet"], 2)

    def test_log_weight_tool(self) -> None:
        client = self._signup("agent-weight@example.com")
        self._llm(
            _reply(_tool_use("tu_1", "logWeight", {"weight": 176, "unit": "lbs"}), stop_reason="tool_use"),
            _reply(_text("Weight logged.")),
        )

        payload = client.post("/api/chat/message", json={"content": "176 lbs this morning"}).json()
        self.assertEqual(payload["tool_calls"][0]["result"]["success"], True)
        latest = client.get("/api/weight/latest").json()
        self.assertEqual(latest["weight"], 176)
        self.assertEqual(latest["unit"], "lbs")

    def test_photo_is_analyzed_once(self) -> None:
        from bobcoach.diet.models import FoodItem, PhotoAnalysis  # noqa: WPS433

        client = self._signup("agent-photo@example.com")
        llm = self._llm(
            _reply(
                _tool_use("tu_1", "analyzeAndConfirmPhoto", {}),
                _tool_use("tu_2", "analyzeAndConfirmPhoto", {}),
                stop_reason="tool_use",
            ),
            _reply(_text("Let me confirm: a slice of pizza, 285 cal.")),
        )
        analysis = PhotoAnalysis(
            foods=[FoodItem(name="pizza slice", quantity="1 slice", calories=285, protein=12, carbs=36, fat=10)],
            overall_confidence="medium",
        )
        with mock.patch("bobcoach.chat.agent.analyze_food_photo", new=mock.AsyncMock(return_value=analysis)) as vision:
            payload = client.post(
                "/api/chat/message",
                json={"content": "lunch", "image_base64": base64.b64encode(b"\xff\xd8\xff fake jpeg bytes").decode()},
            ).json()

        self.assertEqual(vision.await_count, 1)
        self.assertIn("analyzeAndConfirmPhoto", [t["name"] for t in llm.await_args_list[0].kwargs["tools"]])
        first, second = payload["tool_calls"]
        self.assertTrue(first["result"]["analysis_complete"])
        self.assertIn("already analyzed", second["result"]["error"])

        pending = client.get(f"/api/confirmations/pending/{payload['thread_id']}").json()
        self.assertEqual(pending["confirmation_data"]["description"], "pizza slice")
        self.assertEqual(client.get("/api/usage").json()["today"]["photos"]["used"], 1)

    def test_llm_outage_degrades(self) -> None:
        from bobcoach.agent_service import LLMUnavailableError  # noqa: WPS433
        from bobcoach.chat.agent import FALLBACK_REPLY  # noqa: WPS433

        client = self._signup("agent-down@example.com")
        self._llm(LLMUnavailableError("LLM API error 529: overloaded", status_code=529))

        payload = client.post("/api/chat/message", json={"content": "hi Bob"}).json()
        self.assertTrue(payload["degraded"])
        self.assertEqual(payload["answer"], FALLBACK_REPLY)
        self.assertEqual(client.get("/api/usage").json()["today"]["chats"]["used"], 0)

    def test_stream_events(self) -> None:
        client = self._signup("agent-sse@example.com")
        self._llm(
            _reply(_tool_use("tu_1", "showProgress", {}), stop_reason="tool_use"),
            _reply(_text("You have 2259 calories left.")),
        )

        resp = client.post(
            "/api/chat/message",
            json={"content": "how am I doing?"},
            headers={"Accept": "text/event-stream"},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.text
        self.assertIn('"type": "tool_call"', body)
        self.assertIn('"type": "tool_result"', body)
        self.assertIn("You have 2259 calories left.", body)
        self.assertIn('"type": "done"', body)
        self.assertTrue(body.rstrip().endswith("data: [DONE]"))

    def test_dropped_stream_still_saves_and_counts_the_turn(self) -> None:
        from starlette.requests import Request  # noqa: WPS433

        from bobcoach.auth.storage import get_user_by_id  # noqa: WPS433
        from bobcoach.chat.api import send_chat_message  # noqa: WPS433
        from bobcoach.chat.models import ChatMessageCreateRequest  # noqa: WPS433

        client = self._signup("agent-drop@example.com")
        user = get_user_by_id(client.get("/api/auth/me").json()["id"])
        self._llm(_reply(_text("Let me confirm:"), _tool_use("tu_1", "confirmFood", EGGS), stop_reason="tool_use"))
        request = Request(
            {
                "type": "http",
                "method": "POST",
                "path": "/api/chat/message",
                "headers": [(b"accept", b"text/event-stream")],
            }
        )

        async def read_then_disconnect():
            response = await send_chat_message(ChatMessageCreateRequest(content="had 2 eggs"), request, user)
            chunks = response.body_iterator
            first = await chunks.__anext__()
            second = await chunks.__anext__()
            await chunks.aclose()
            return first, second

        first, second = asyncio.run(read_then_disconnect())
        self.assertIn('"type": "thread"', first)
        self.assertIn("Let me confirm:", second)

        self.assertEqual(client.get("/api/usage").json()["today"]["chats"]["used"], 1)
        items = client.get("/api/chat/history").json()["items"]
        self.assertEqual([m["role"] for m in items], ["user", "assistant"])
        self.assertEqual(items[-1]["content"], "Let me confirm:")


if __name__ == "__main__":
    unittest.main()
