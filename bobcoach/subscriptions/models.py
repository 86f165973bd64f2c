# -*- coding: utf-8 -*-
"""Subscriptions — Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Subscription(BaseModel):
    id: str
    polar_id: Optional[str] = None
    polar_price_id: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = None
    interval: Optional[str] = None
    amount: Optional[int] = None
    current_period_start: Optional[str] = None
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    updated_at: str


class SubscriptionStatus(BaseModel):
    has_active_subscription: bool
    subscription: Optional[Subscription] = None
