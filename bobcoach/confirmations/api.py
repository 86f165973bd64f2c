# -*- coding: utf-8 -*-
"""Confirmations — API endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import Bubble, BubbleSaveRequest, PendingConfirmation
from .storage import (
    clear_user_pending,
    confirm_pending,
    expire_pending,
    get_latest_pending,
    list_bubbles,
    save_bubble,
)

router = APIRouter(prefix="/api/confirmations", tags=["Confirmations"])


@router.get("/pending/{thread_id}", response_model=Optional[PendingConfirmation], summary="Latest live confirmation")
def latest_pending(thread_id: str, user: dict = Depends(get_current_user)):
    return get_latest_pending(user_id=user["id"], thread_id=thread_id)


@router.post("/{confirmation_id}/confirm", response_model=PendingConfirmation, summary="Mark confirmed")
def confirm(confirmation_id: str, user: dict = Depends(get_current_user)):
    return confirm_pending(user_id=user["id"], confirmation_id=confirmation_id)


@router.post("/{confirmation_id}/expire", response_model=PendingConfirmation, summary="Mark expired")
def expire(confirmation_id: str, user: dict = Depends(get_current_user)):
    return expire_pending(user_id=user["id"], confirmation_id=confirmation_id)


@router.delete("/pending", summary="Expire all of the user's pending confirmations")
def clear_pending(user: dict = Depends(get_current_user)):
    return {"cleared": clear_user_pending(user_id=user["id"])}


@router.post("/bubbles", summary="Save a confirm/reject bubble state")
def create_bubble(request: BubbleSaveRequest, user: dict = Depends(get_current_user)):
    bubble_id = save_bubble(user_id=user["id"], **request.model_dump())
    return {"id": bubble_id}


@router.get("/bubbles/{thread_id}", response_model=List[Bubble], summary="Bubble states for a thread")
def get_bubbles(thread_id: str, user: dict = Depends(get_current_user)):
    return list_bubbles(user_id=user["id"], thread_id=thread_id)
