# -*- coding: utf-8 -*-
"""Chat — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessageCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10_000)
    # Optional photo for this turn (raw base64, never stored).
    image_base64: Optional[str] = Field(None, min_length=16)
    image_mime: str = Field("image/jpeg", pattern=r"^image/(jpeg|jpg|png|webp|gif)$")


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: float
    metadata: Dict[str, Any] = {}


class ChatHistoryResponse(BaseModel):
    count: int
    items: List[ChatMessage]


class DailyThread(BaseModel):
    thread_id: str
    is_new: bool
    message_count: int


class ChatMessageCreateResponse(BaseModel):
    status: str
    answer: str
    thread_id: str
    tool_calls: List[Dict[str, Any]] = []
    usage: Dict[str, int] = {}
    degraded: bool = False
