# -*- coding: utf-8 -*-
"""Diet — API endpoints."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..agent_service import LLMUnavailableError
from ..auth.security import get_current_user
from ..config import settings
from ..usage.storage import check_limit, model_family, track_usage
from .models import (
    FoodLog,
    FoodLogCreateRequest,
    FoodLogList,
    FoodLogUpdateRequest,
    PhotoAnalysis,
    PhotoAnalyzeRequest,
    TodayMacros,
    TodayStats,
    WeeklyStats,
)
from .storage import (
    create_food_log,
    delete_food_log,
    get_logs_by_date,
    get_logs_range,
    get_today_macros,
    get_today_stats,
    get_weekly_stats,
    update_food_log,
)
from .vision import analyze_food_photo

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diet", tags=["Diet"])


def decode_image_or_400(image_base64: str, max_bytes: int) -> bytes:
    try:
        data = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid base64 image: {exc}") from exc
    if len(data) > max_bytes:
        raise HTTPException(status_code=400, detail=f"Image too large: {len(data)} bytes > {max_bytes}")
    return data


@router.post("/logs", response_model=FoodLog, summary="Log food")
def create_log(request: FoodLogCreateRequest, user: dict = Depends(get_current_user)):
    return create_food_log(
        user_id=user["id"],
        description=request.description,
        foods=[f.model_dump() for f in request.foods],
        meal=request.meal.value if request.meal else None,
        photo_url=request.photo_url,
        ai_estimated=request.ai_estimated,
        confidence=request.confidence,
    )


@router.patch("/logs/{log_id}", response_model=FoodLog, summary="Update a food log")
def update_log(log_id: str, request: FoodLogUpdateRequest, user: dict = Depends(get_current_user)):
    return update_food_log(
        user_id=user["id"],
        log_id=log_id,
        description=request.description,
        foods=[f.model_dump() for f in request.foods] if request.foods is not None else None,
    )


@router.delete("/logs/{log_id}", summary="Delete a food log")
def delete_log(log_id: str, user: dict = Depends(get_current_user)):
    delete_food_log(user_id=user["id"], log_id=log_id)
    return {"status": "ok"}


@router.get("/logs", response_model=FoodLogList, summary="Food logs for a date or a date range")
def list_logs(
    date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    start: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    user: dict = Depends(get_current_user),
):
    if date:
        items = get_logs_by_date(user_id=user["id"], date=date)
    elif start and end:
        items = get_logs_range(user_id=user["id"], start=start, end=end)
    else:
        raise HTTPException(status_code=400, detail="Provide either date or start and end")
    return FoodLogList(count=len(items), items=items)


@router.get("/today", response_model=TodayStats, summary="Today's totals and meal count")
def today(user: dict = Depends(get_current_user)):
    return get_today_stats(user_id=user["id"])


@router.get("/today/macros", response_model=TodayMacros, summary="Consumed, target and remaining macros")
def today_macros(user: dict = Depends(get_current_user)):
    return get_today_macros(user_id=user["id"])


@router.get("/weekly", response_model=Optional[WeeklyStats], summary="Weekly calorie stats")
def weekly(
    week_start: str = Query(..., description="YYYY-MM-DD"),
    user: dict = Depends(get_current_user),
):
    return get_weekly_stats(user_id=user["id"], week_start=week_start)


@router.post("/photo/analyze", response_model=PhotoAnalysis, summary="Food photo analysis (photo is not stored)")
async def analyze_photo(request: PhotoAnalyzeRequest, user: dict = Depends(get_current_user)):
    image_bytes = decode_image_or_400(request.image_base64, max_bytes=settings.max_image_bytes)

    limit = check_limit(user_id=user["id"], usage_type="photoAnalysis")
    if not limit["allowed"]:
        raise HTTPException(status_code=429, detail=limit)

    try:
        analysis = await analyze_food_photo(
            image_bytes=image_bytes,
            image_mime=request.image_mime,
            context=request.context,
        )
    except LLMUnavailableError as exc:
        log.warning("photo analysis failed for user %s: %s", user["id"], exc)
        raise HTTPException(status_code=502, detail="Photo analysis is temporarily unavailable") from exc

    track_usage(user_id=user["id"], usage_type="photoAnalysis", model_used=model_family(settings.vision_model))
    return analysis
