# -*- coding: utf-8 -*-
"""Onboarding — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..profiles.models import UserProfile


class OnboardingStepRequest(BaseModel):
    step: str = Field(..., min_length=1, max_length=64)
    response: Any = None


class OnboardingStatus(BaseModel):
    completed: bool
    current_step: str
    responses: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[str] = None
    profile: Optional[UserProfile] = None
