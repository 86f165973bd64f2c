# -*- coding: utf-8 -*-
"""Usage — Pydantic models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

UsageType = Literal["chat", "photoAnalysis"]


class UsageLimit(BaseModel):
    allowed: bool
    unlimited: bool = False
    remaining: Optional[int] = None
    limit: Optional[int] = None
    message: str
    show_upgrade: bool = False


class UsageBucket(BaseModel):
    used: int
    limit: Optional[int] = None
    remaining: Optional[int] = None


class UsageToday(BaseModel):
    chats: UsageBucket
    photos: UsageBucket


class UsageStats(BaseModel):
    today: UsageToday
    is_pro: bool
    model_usage: dict
