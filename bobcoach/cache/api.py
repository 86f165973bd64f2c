# -*- coding: utf-8 -*-
"""Cache — API endpoints (session cache)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import SessionCacheResponse, SessionCacheSetRequest
from .storage import clear_session_cache, clear_session_cache_key, get_session_cache, set_session_cache

router = APIRouter(prefix="/api/cache", tags=["Cache"])


@router.get("/{cache_key}", response_model=SessionCacheResponse, summary="Read a session cache entry")
def read_cache(cache_key: str, user: dict = Depends(get_current_user)):
    return SessionCacheResponse(cache_key=cache_key, data=get_session_cache(user_id=user["id"], cache_key=cache_key))


@router.put("/{cache_key}", summary="Write a session cache entry")
def write_cache(cache_key: str, request: SessionCacheSetRequest, user: dict = Depends(get_current_user)):
    set_session_cache(user_id=user["id"], cache_key=cache_key, data=request.data, ttl_seconds=request.ttl_seconds)
    return {"status": "ok"}


@router.delete("", summary="Clear my session cache")
def clear_cache(user: dict = Depends(get_current_user)):
    deleted = clear_session_cache(user_id=user["id"])
    return {"status": "ok", "deleted": deleted}


@router.delete("/{cache_key}", summary="Clear one session cache key")
def clear_cache_key(cache_key: str, user: dict = Depends(get_current_user)):
    clear_session_cache_key(user_id=user["id"], cache_key=cache_key)
    return {"status": "ok"}
