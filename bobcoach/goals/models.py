# -*- coding: utf-8 -*-
"""Goals — Pydantic models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

GoalType = Literal["cut", "gain", "maintain"]


class GoalCreateRequest(BaseModel):
    goal: GoalType
    starting_weight: float = Field(..., gt=0, le=700)
    target_weight: float = Field(..., gt=0, le=700)
    starting_unit: Literal["kg", "lbs"] = "kg"
    reason: Optional[str] = Field(None, max_length=500)


class Goal(BaseModel):
    id: str
    goal: str
    starting_weight: float
    target_weight: float
    starting_unit: str
    status: Literal["active", "completed", "abandoned"]
    reason: Optional[str] = None
    triggered_by: str
    started_at: str
    completed_at: Optional[str] = None
    created_at: str


class GoalCheck(BaseModel):
    achieved: bool
    current_weight: float
    target_weight: float
    goal: str


class Achievement(BaseModel):
    id: str
    goal_type: str
    target_weight: float
    achieved_weight: float
    weekly_average: float
    achieved_at: str
    bob_suggested: bool
    new_goal_set: Optional[bool] = None
    days_at_goal: Optional[int] = None


class AchievementList(BaseModel):
    count: int
    items: List[Achievement]


class AchievementEvaluation(BaseModel):
    achieved: bool
    goal: str
    weekly_average: float
    target_weight: float
    achievement_id: Optional[str] = None
