# -*- coding: utf-8 -*-
"""Weight — API endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import LatestWeight, WeightLog, WeightLogList, WeightLogRequest, WeightStats
from .storage import delete_weight_log, get_latest_weight, get_weight_stats, list_weight_logs, log_weight

router = APIRouter(prefix="/api/weight", tags=["Weight"])


@router.post("", response_model=WeightLog, summary="Log today's weight")
def create_log(request: WeightLogRequest, user: dict = Depends(get_current_user)):
    return log_weight(user_id=user["id"], weight=request.weight, unit=request.unit, notes=request.notes)


@router.get("", response_model=WeightLogList, summary="Recent weight logs (newest date first)")
def list_logs(user: dict = Depends(get_current_user)):
    items = list_weight_logs(user_id=user["id"])
    return WeightLogList(count=len(items), items=items)


@router.get("/latest", response_model=Optional[LatestWeight], summary="Latest weight with 7-day trend")
def latest(user: dict = Depends(get_current_user)):
    return get_latest_weight(user_id=user["id"])


@router.get("/stats", response_model=Optional[WeightStats], summary="Weight progress stats")
def stats(user: dict = Depends(get_current_user)):
    return get_weight_stats(user_id=user["id"])


@router.delete("/{log_id}", summary="Delete a weight log")
def delete_log(log_id: str, user: dict = Depends(get_current_user)):
    delete_weight_log(user_id=user["id"], log_id=log_id)
    return {"status": "ok"}
