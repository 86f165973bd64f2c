# -*- coding: utf-8 -*-
"""Profiles — API endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import (
    COMMON_RESTRICTIONS,
    CommonRestrictions,
    DietaryPreferences,
    DietaryPreferencesRequest,
    FastingUpdateRequest,
    PreferencesUpdateRequest,
    ProfileFieldUpdateRequest,
    ProfileUpsertRequest,
    RestrictionRequest,
    UserPreferences,
    UserProfile,
    normalize_restriction,
)
from .storage import (
    add_dietary_restriction,
    get_dietary_preferences,
    get_preferences,
    get_profile,
    is_in_fasting_window,
    remove_dietary_restriction,
    save_preferences,
    set_dietary_preferences,
    toggle_display_mode,
    update_intermittent_fasting,
    update_profile_field,
    upsert_profile,
    user_now,
)

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", response_model=Optional[UserProfile], summary="Get my profile (null before onboarding)")
def read_profile(user: dict = Depends(get_current_user)):
    return get_profile(user["id"])


@router.put("", response_model=UserProfile, summary="Create or update my profile")
def write_profile(request: ProfileUpsertRequest, user: dict = Depends(get_current_user)):
    return upsert_profile(user_id=user["id"], data=request.model_dump())


@router.patch("", response_model=UserProfile, summary="Update a single profile field")
def patch_profile(request: ProfileFieldUpdateRequest, user: dict = Depends(get_current_user)):
    return update_profile_field(user_id=user["id"], field=request.field, value=request.value)


@router.get("/preferences", response_model=UserPreferences, summary="Get my preferences")
def read_preferences(user: dict = Depends(get_current_user)):
    return get_preferences(user["id"])


@router.put("/preferences", response_model=UserPreferences, summary="Update my preferences")
def write_preferences(request: PreferencesUpdateRequest, user: dict = Depends(get_current_user)):
    return save_preferences(user_id=user["id"], changes=request.changes())


@router.post("/preferences/toggle-display-mode", response_model=UserPreferences, summary="Switch standard/stealth")
def switch_display_mode(user: dict = Depends(get_current_user)):
    return toggle_display_mode(user_id=user["id"])


# ---- dietary preferences ----

def _with_window(user_id: str, prefs: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if prefs is None:
        return None
    return {**prefs, "in_fasting_window": is_in_fasting_window(prefs["intermittent_fasting"], user_now(user_id))}


@router.get("/dietary", response_model=Optional[DietaryPreferences], summary="Dietary restrictions and fasting")
def read_dietary(user: dict = Depends(get_current_user)):
    return _with_window(user["id"], get_dietary_preferences(user["id"]))


@router.put("/dietary", response_model=DietaryPreferences, summary="Replace dietary preferences")
def write_dietary(request: DietaryPreferencesRequest, user: dict = Depends(get_current_user)):
    fasting = request.intermittent_fasting.model_dump() if request.intermittent_fasting else None
    prefs = set_dietary_preferences(
        user_id=user["id"],
        restrictions=request.restrictions,
        custom_notes=request.custom_notes,
        intermittent_fasting=fasting,
    )
    return _with_window(user["id"], prefs)


@router.get("/dietary/restrictions/common", response_model=CommonRestrictions, summary="Suggested restrictions")
def common_restrictions():
    return CommonRestrictions(restrictions=list(COMMON_RESTRICTIONS))


@router.post("/dietary/restrictions", response_model=DietaryPreferences, summary="Add one restriction")
def add_restriction(request: RestrictionRequest, user: dict = Depends(get_current_user)):
    return _with_window(user["id"], add_dietary_restriction(user_id=user["id"], restriction=request.restriction))


@router.delete(
    "/dietary/restrictions/{restriction}",
    response_model=Optional[DietaryPreferences],
    summary="Remove one restriction",
)
def remove_restriction(restriction: str, user: dict = Depends(get_current_user)):
    prefs = remove_dietary_restriction(user_id=user["id"], restriction=normalize_restriction(restriction))
    return _with_window(user["id"], prefs)


@router.put("/dietary/fasting", response_model=DietaryPreferences, summary="Update intermittent fasting")
def write_fasting(request: FastingUpdateRequest, user: dict = Depends(get_current_user)):
    prefs = update_intermittent_fasting(user_id=user["id"], **request.model_dump())
    return _with_window(user["id"], prefs)
