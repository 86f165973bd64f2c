# -*- coding: utf-8 -*-
"""Subscriptions — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import SubscriptionStatus
from .storage import get_current_subscription, has_active_subscription

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])


@router.get("", response_model=SubscriptionStatus, summary="Current subscription status")
def status(user: dict = Depends(get_current_user)):
    return SubscriptionStatus(
        has_active_subscription=has_active_subscription(user["id"]),
        subscription=get_current_subscription(user["id"]),
    )
