# -*- coding: utf-8 -*-
"""Summaries — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class CalibrationAdjustment(BaseModel):
    old_target: int
    new_target: int
    reason: str


class WeeklySummaryStats(BaseModel):
    week_start_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    week_end_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    start_weight: float
    end_weight: float
    weight_change: float
    average_daily_calories: float
    target_daily_calories: int
    meals_logged: int = Field(..., ge=0)
    total_meals_possible: int = 21
    logging_consistency: float = Field(..., ge=0, le=100)
    weight_tracking_days: int = Field(..., ge=0, le=7)
    expected_weight_change: float
    actual_weight_change: float
    goal: Optional[Literal["cut", "gain", "maintain"]] = None
    calibration_adjustment: Optional[CalibrationAdjustment] = None


class WeeklySummary(BaseModel):
    id: str
    week_start_date: str
    week_end_date: str
    stats: WeeklySummaryStats
    insights: str
    created_at: str


class GenerateSummaryRequest(BaseModel):
    week_start: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class CalibrationRecord(BaseModel):
    id: str
    date: str
    old_calorie_target: int
    new_calorie_target: int
    reason: str
    data_points_analyzed: int
    confidence: str
    created_at: str


class LatestCalibration(CalibrationRecord):
    is_recent: bool
    weeks_since: int
    adjustment: CalibrationAdjustment


class CalibrationResult(BaseModel):
    status: str
    message: Optional[str] = None
    old_target: Optional[int] = None
    new_target: Optional[int] = None
    adjustment: Optional[int] = None
    reason: Optional[str] = None
    confidence: Optional[str] = None
    metrics: Optional[Dict[str, Any]] = None


class CalibrationHistory(BaseModel):
    count: int
    items: List[CalibrationRecord]
