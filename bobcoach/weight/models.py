# -*- coding: utf-8 -*-
"""Weight — Pydantic models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

WeightUnit = Literal["kg", "lbs"]


class WeightLogRequest(BaseModel):
    weight: float = Field(..., gt=0, le=700)
    unit: WeightUnit = "kg"
    notes: Optional[str] = Field(None, max_length=500)


class WeightLog(BaseModel):
    id: str
    weight: float
    unit: str
    date: str
    time: str
    notes: Optional[str] = None
    created_at: str


class LatestWeight(WeightLog):
    trend: float = 0.0


class WeightLogList(BaseModel):
    count: int
    items: List[WeightLog]


class WeightStats(BaseModel):
    current: float
    starting: float
    target: float
    total_change: float
    to_goal: float
    days_tracked: int
