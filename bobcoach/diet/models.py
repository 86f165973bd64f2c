# -*- coding: utf-8 -*-
"""Diet — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Confidence = Literal["low", "medium", "high"]


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"


class NutritionTotals(BaseModel):
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)


class FoodItem(BaseModel):
    name: str = Field(..., min_length=1, description="Food name, e.g. 'banana'")
    quantity: str = Field("1 serving", description="Human-readable portion, e.g. '1 cup'")
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    confidence: Optional[Confidence] = None


class FoodLogCreateRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=2000)
    foods: List[FoodItem] = Field(..., min_length=1)
    meal: Optional[MealType] = None
    photo_url: Optional[str] = Field(None, max_length=2000)
    ai_estimated: bool = False
    confidence: Confidence = "medium"


class FoodLogUpdateRequest(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    foods: Optional[List[FoodItem]] = Field(None, min_length=1)


class FoodLog(BaseModel):
    id: str
    date: str
    time: str
    meal: MealType
    description: str
    foods: List[FoodItem] = []
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fat: float
    photo_url: Optional[str] = None
    ai_estimated: bool
    confidence: str
    created_at: str


class FoodLogList(BaseModel):
    count: int
    items: List[FoodLog]


class TodayStats(BaseModel):
    calories: float
    protein: float
    carbs: float
    fat: float
    meal_count: int


class TodayMacros(BaseModel):
    consumed: NutritionTotals
    targets: Optional[Dict[str, float]] = None
    remaining: Optional[Dict[str, float]] = None


class WeeklyStats(BaseModel):
    total_calories: float
    average_calories: int
    meals_logged: int
    days_with_logs: int
    expected_weight_change: float


class PhotoAnalyzeRequest(BaseModel):
    image_mime: str = Field("image/jpeg", pattern=r"^image/(jpeg|jpg|png|webp|gif)$")
    image_base64: str = Field(..., min_length=16, description="Raw base64 without data-url prefix")
    context: Optional[str] = Field(None, max_length=1000)


class PhotoMetadata(BaseModel):
    visual_description: Optional[str] = None
    plating_style: Optional[str] = None
    portion_size: Optional[str] = None


class PhotoAnalysis(BaseModel):
    foods: List[FoodItem] = []
    totals: NutritionTotals = NutritionTotals()
    overall_confidence: Confidence = "low"
    metadata: Optional[PhotoMetadata] = None
    warnings: List[str] = []
    no_food: bool = False
    error: Optional[str] = None
    description: Optional[str] = None

    @field_validator("warnings", mode="before")
    @classmethod
    def _coerce_warnings(cls, value: object) -> List[str]:
        """Models return warnings as a string, a list, or nothing at all."""
        if value is None:
            return []
        if isinstance(value, str):
            v = value.strip()
            return [v] if v else []
        if isinstance(value, list):
            return [str(item).strip() for item in value if item is not None and str(item).strip()]
        s = str(value).strip()
        return [s] if s else []
