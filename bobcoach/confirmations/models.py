# -*- coding: utf-8 -*-
"""Confirmations — Pydantic models."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field

from ..diet.models import FoodItem


class ConfirmationData(BaseModel):
    description: str
    items: List[FoodItem] = []
    total_calories: float = 0.0
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fat: float = 0.0
    meal_type: str = "snack"
    confidence: str = "medium"


class PendingConfirmation(BaseModel):
    id: str
    thread_id: str
    tool_call_id: str
    confirmation_data: ConfirmationData
    status: Literal["pending", "confirmed", "expired"]
    created_at: float
    expires_at: float


class BubbleSaveRequest(BaseModel):
    thread_id: str = Field(..., min_length=1)
    message_index: int = Field(..., ge=0)
    confirmation_id: str = Field(..., min_length=1)
    tool_call_id: str | None = None
    food_description: str = Field(..., min_length=1, max_length=2000)
    status: Literal["confirmed", "rejected"]


class Bubble(BaseModel):
    confirmation_id: str
    message_index: int
    status: str
    food_description: str
    confirmed_at: float
