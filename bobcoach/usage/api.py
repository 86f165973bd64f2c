# -*- coding: utf-8 -*-
"""Usage — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from .models import UsageLimit, UsageStats, UsageType
from .storage import check_limit, get_usage_stats

router = APIRouter(prefix="/api/usage", tags=["Usage"])


@router.get("", response_model=UsageStats, summary="Today's usage against the free tier")
def stats(user: dict = Depends(get_current_user)):
    return get_usage_stats(user_id=user["id"])


@router.get("/check", response_model=UsageLimit, summary="Whether one more action is allowed today")
def check(usage_type: UsageType = Query(...), user: dict = Depends(get_current_user)):
    return check_limit(user_id=user["id"], usage_type=usage_type)
