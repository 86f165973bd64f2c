# -*- coding: utf-8 -*-
"""Goals — API endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from .models import Achievement, AchievementEvaluation, AchievementList, Goal, GoalCheck, GoalCreateRequest
from .storage import (
    check_active_goal,
    complete_goal,
    create_goal,
    evaluate_achievement,
    get_achievement_history,
    get_active_goal,
    get_goal_history,
    get_latest_achievement,
    mark_achievement_handled,
)

router = APIRouter(prefix="/api/goals", tags=["Goals"])


@router.get("/active", response_model=Optional[Goal], summary="Current active goal")
def active(user: dict = Depends(get_current_user)):
    return get_active_goal(user["id"])


@router.post("", response_model=Goal, summary="Start a new goal (abandons the active one)")
def create(request: GoalCreateRequest, user: dict = Depends(get_current_user)):
    return create_goal(user_id=user["id"], **request.model_dump())


@router.post("/{goal_id}/complete", response_model=Goal, summary="Mark a goal completed")
def complete(goal_id: str, user: dict = Depends(get_current_user)):
    return complete_goal(user_id=user["id"], goal_id=goal_id)


@router.get("/check", response_model=Optional[GoalCheck], summary="Latest weight vs. active goal")
def check(user: dict = Depends(get_current_user)):
    return check_active_goal(user["id"])


@router.get("/history", response_model=List[Goal], summary="Goal history (newest first)")
def history(limit: int = Query(default=10, ge=1, le=100), user: dict = Depends(get_current_user)):
    return get_goal_history(user_id=user["id"], limit=limit)


@router.get("/achievements/latest", response_model=Optional[Achievement], summary="Latest unhandled achievement")
def latest_achievement(user: dict = Depends(get_current_user)):
    return get_latest_achievement(user["id"])


@router.post("/achievements/{achievement_id}/handled", summary="Mark an achievement as handled by Bob")
def handled(achievement_id: str, user: dict = Depends(get_current_user)):
    mark_achievement_handled(user_id=user["id"], achievement_id=achievement_id)
    return {"status": "ok"}


@router.get("/achievements", response_model=AchievementList, summary="Achievement history")
def achievements(user: dict = Depends(get_current_user)):
    items = get_achievement_history(user["id"])
    return AchievementList(count=len(items), items=items)


@router.post("/achievements/evaluate", response_model=Optional[AchievementEvaluation], summary="Check the weekly average")
def evaluate(user: dict = Depends(get_current_user)):
    return evaluate_achievement(user_id=user["id"])
