# -*- coding: utf-8 -*-
"""Summaries — weekly summary and calibration endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user
from .models import (
    CalibrationHistory,
    CalibrationResult,
    GenerateSummaryRequest,
    LatestCalibration,
    WeeklySummary,
    WeeklySummaryStats,
)
from .storage import (
    calibrate_user,
    generate_weekly_summary,
    get_calibration_history,
    get_latest_calibration,
    get_latest_weekly_summary,
    list_weekly_summaries,
    save_weekly_summary,
)

router = APIRouter(prefix="/api/summaries", tags=["Summaries"])


@router.post("/weekly", response_model=WeeklySummary, summary="Save (or replace) a weekly summary")
def save(request: WeeklySummaryStats, user: dict = Depends(get_current_user)):
    return save_weekly_summary(user_id=user["id"], stats=request.model_dump())


@router.get("/weekly", response_model=List[WeeklySummary], summary="Weekly summaries (newest first)")
def list_summaries(limit: int = Query(default=10, ge=1, le=52), user: dict = Depends(get_current_user)):
    return list_weekly_summaries(user_id=user["id"], limit=limit)


@router.get("/weekly/latest", response_model=Optional[WeeklySummary], summary="Latest weekly summary")
def latest(user: dict = Depends(get_current_user)):
    return get_latest_weekly_summary(user["id"])


@router.post("/weekly/generate", response_model=WeeklySummary, summary="Build a summary from the logs")
def generate(request: GenerateSummaryRequest, user: dict = Depends(get_current_user)):
    summary = generate_weekly_summary(user_id=user["id"], week_start=request.week_start)
    if summary is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return summary


@router.post("/calibration", response_model=Optional[CalibrationResult], summary="Run calibration now")
def trigger_calibration(user: dict = Depends(get_current_user)):
    return calibrate_user(user_id=user["id"])


@router.get("/calibration", response_model=CalibrationHistory, summary="Calibration history")
def calibration_history(user: dict = Depends(get_current_user)):
    items = get_calibration_history(user_id=user["id"])
    return CalibrationHistory(count=len(items), items=items)


@router.get("/calibration/latest", response_model=Optional[LatestCalibration], summary="Latest calibration")
def latest_calibration(user: dict = Depends(get_current_user)):
    return get_latest_calibration(user_id=user["id"])
