# -*- coding: utf-8 -*-
"""Onboarding — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import OnboardingStatus, OnboardingStepRequest
from .storage import force_complete, get_status, reset_onboarding, save_step

router = APIRouter(prefix="/api/onboarding", tags=["Onboarding"])


@router.get("", response_model=OnboardingStatus, summary="Onboarding status")
def status(user: dict = Depends(get_current_user)):
    return get_status(user["id"])


@router.post("/step", response_model=OnboardingStatus, summary="Save one onboarding answer")
def save(request: OnboardingStepRequest, user: dict = Depends(get_current_user)):
    return save_step(user_id=user["id"], step=request.step, response=request.response)


@router.post("/force-complete", summary="Complete onboarding from the answers collected so far")
def complete(user: dict = Depends(get_current_user)):
    # Missing data is reported in the payload ({"error": ...}), not as an HTTP error.
    return force_complete(user_id=user["id"])


@router.post("/reset", summary="Restart onboarding (data is kept)")
def reset(user: dict = Depends(get_current_user)):
    return reset_onboarding(user_id=user["id"])
