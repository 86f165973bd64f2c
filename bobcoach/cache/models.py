# -*- coding: utf-8 -*-
"""Cache — Pydantic models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class SessionCacheSetRequest(BaseModel):
    data: Any
    ttl_seconds: Optional[int] = Field(None, ge=1, le=7 * 24 * 3600)


class SessionCacheResponse(BaseModel):
    cache_key: str
    data: Any = None
