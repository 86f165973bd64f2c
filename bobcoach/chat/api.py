# -*- coding: utf-8 -*-
"""Chat — API endpoints (daily thread, history, messages)."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from ..agent_service import LLMUnavailableError, llm_configured
from ..auth.security import get_current_user
from ..config import settings
from ..confirmations.storage import clear_user_pending
from ..diet.api import decode_image_or_400
from ..usage.storage import check_limit, model_family, track_usage
from .agent import FALLBACK_REPLY, ToolContext, run_agent
from .context import build_chat_context
from .models import ChatHistoryResponse, ChatMessageCreateRequest, ChatMessageCreateResponse, DailyThread
from .storage import clear_history, get_or_create_daily_thread, get_recent_messages, get_today_messages, save_message

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.get("/thread", response_model=DailyThread, summary="Get or create today's thread")
def daily_thread(user: dict = Depends(get_current_user)):
    return get_or_create_daily_thread(user_id=user["id"])


@router.get("/history", response_model=ChatHistoryResponse, summary="Last N messages (chronological)")
def history(limit: int = Query(default=50, ge=1, le=500), user: dict = Depends(get_current_user)):
    items = get_recent_messages(user_id=user["id"], limit=limit)
    return ChatHistoryResponse(count=len(items), items=items)


@router.get("/history/today", response_model=ChatHistoryResponse, summary="Today's messages")
def history_today(user: dict = Depends(get_current_user)):
    items = get_today_messages(user_id=user["id"])
    return ChatHistoryResponse(count=len(items), items=items)


@router.delete("/history", summary="Clear chat history and pending confirmations")
def delete_history(user: dict = Depends(get_current_user)):
    deleted = clear_history(user_id=user["id"])
    clear_user_pending(user_id=user["id"])
    return {"status": "ok", "deleted": deleted}


def _check_limits(user_id: str, *, with_photo: bool) -> None:
    for usage_type in ("chat", "photoAnalysis") if with_photo else ("chat",):
        limit = check_limit(user_id=user_id, usage_type=usage_type)
        if not limit["allowed"]:
            raise HTTPException(status_code=429, detail=limit)


class _Turn:
    """Accumulates agent events into the persisted assistant message."""

    def __init__(self) -> None:
        self.texts: List[str] = []
        self.done: Dict[str, Any] = {}
        self.degraded = False
        self.persisted = False

    def add(self, event: Dict[str, Any]) -> None:
        if event["type"] == "text":
            self.texts.append(event["text"])
        elif event["type"] == "done":
            self.done = event

    def fail(self) -> None:
        self.degraded = True
        self.texts.append(FALLBACK_REPLY)

    @property
    def answer(self) -> str:
        return "\n\n".join(t.strip() for t in self.texts if t.strip()) or FALLBACK_REPLY

    def persist(self, *, user_id: str, thread_id: str, tctx: ToolContext) -> None:
        if self.persisted:
            return
        self.persisted = True
        save_message(
            user_id=user_id,
            thread_id=thread_id,
            role="assistant",
            content=self.answer,
            tool_calls=self.done.get("tool_calls") or None,
            metadata={
                "action_type": self.done.get("action_type"),
                "usage": self.done.get("usage"),
                "food_log_id": self.done.get("food_log_id"),
                "weight_log_id": self.done.get("weight_log_id"),
                "degraded": self.degraded,
            },
        )
        if self.degraded:
            return
        track_usage(user_id=user_id, usage_type="chat", model_used=model_family(settings.llm_model))
        if tctx.photo_analyzed:
            track_usage(user_id=user_id, usage_type="photoAnalysis", model_used=model_family(settings.vision_model))


async def _agent_events(ctx: Dict[str, Any], content: str, tctx: ToolContext, turn: _Turn) -> AsyncIterator[Dict[str, Any]]:
    """Agent events; LLM outages end the turn with the fallback reply instead of an error."""
    if not llm_configured():
        turn.fail()
        yield {"type": "text", "text": FALLBACK_REPLY}
        return
    try:
        async for event in run_agent(ctx=ctx, message=content, tctx=tctx):
            turn.add(event)
            yield event
    except LLMUnavailableError as exc:
        log.warning("chat degraded for user %s: %s", tctx.user_id, exc)
        turn.fail()
        yield {"type": "text", "text": FALLBACK_REPLY}


def _sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"


@router.post("/message", summary="Send a message to Bob (streams SSE if requested)")
async def send_chat_message(
    request_body: ChatMessageCreateRequest,
    request: Request,
    user: dict = Depends(get_current_user),
):
    content = request_body.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Empty content")

    image_bytes: Optional[bytes] = None
    if request_body.image_base64:
        image_bytes = decode_image_or_400(request_body.image_base64, max_bytes=settings.max_image_bytes)
    _check_limits(user["id"], with_photo=image_bytes is not None)

    thread = get_or_create_daily_thread(user_id=user["id"])
    thread_id = thread["thread_id"]
    # Context is built before the new message lands in history.
    ctx = build_chat_context(user_id=user["id"])
    save_message(
        user_id=user["id"],
        thread_id=thread_id,
        role="user",
        content=content,
        metadata={"has_image": image_bytes is not None},
    )

    tctx = ToolContext(
        user_id=user["id"],
        thread_id=thread_id,
        image_bytes=image_bytes,
        image_mime=request_body.image_mime,
    )
    turn = _Turn()
    wants_stream = "text/event-stream" in (request.headers.get("accept") or "")

    if wants_stream:
        async def stream():
            try:
                yield _sse({"type": "thread", "thread_id": thread_id})
                async for event in _agent_events(ctx, content, tctx, turn):
                    yield _sse(event)
            finally:
                # Runs on client disconnect too: the turn is saved and counted.
                turn.persist(user_id=user["id"], thread_id=thread_id, tctx=tctx)
            yield "data: [DONE]\n\n"

        return StreamingResponse(stream(), media_type="text/event-stream")

    async for _event in _agent_events(ctx, content, tctx, turn):
        pass
    turn.persist(user_id=user["id"], thread_id=thread_id, tctx=tctx)
    return ChatMessageCreateResponse(
        status="degraded" if turn.degraded else "ok",
        answer=turn.answer,
        thread_id=thread_id,
        tool_calls=turn.done.get("tool_calls") or [],
        usage=turn.done.get("usage") or {},
        degraded=turn.degraded,
    )
