# -*- coding: utf-8 -*-
"""LLM calling service (Anthropic Messages API over httpx).

Both the chat agent and the food photo analysis go through `create_message`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import settings
from .retry import RETRY_CONFIGS, retry_with_backoff

log = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class LLMUnavailableError(RuntimeError):
    """The LLM could not be reached or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def llm_configured() -> bool:
    return bool(settings.llm_api_key)


def _messages_url() -> str:
    base = settings.llm_base_url.rstrip("/")
    if base.endswith("/v1/messages"):
        return base
    if base.endswith("/v1"):
        return f"{base}/messages"
    return f"{base}/v1/messages"


async def create_message(
    *,
    system: str,
    messages: List[Dict[str, Any]],
    tools: Optional[List[Dict[str, Any]]] = None,
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    """One Messages API round trip; transient failures are retried with backoff."""
    if not settings.llm_api_key:
        raise LLMUnavailableError("ANTHROPIC_API_KEY is not configured")

    payload: Dict[str, Any] = {
        "model": model or settings.llm_model,
        "max_tokens": int(max_tokens or settings.llm_max_tokens),
        "system": system,
        "messages": messages,
    }
    if tools:
        payload["tools"] = tools
    headers = {
        "content-type": "application/json",
        "x-api-key": settings.llm_api_key,
        "anthropic-version": ANTHROPIC_VERSION,
    }

    async def call() -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=settings.llm_timeout) as client:
            resp = await client.post(_messages_url(), headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()

    def on_retry(attempt: int, exc: BaseException) -> None:
        log.warning("LLM call failed (attempt %d): %s", attempt, exc)

    try:
        return await retry_with_backoff(call, RETRY_CONFIGS["api"], on_retry=on_retry)
    except httpx.HTTPStatusError as exc:
        detail = exc.response.text[:300]
        raise LLMUnavailableError(
            f"LLM API error {exc.response.status_code}: {detail}",
            status_code=exc.response.status_code,
        ) from exc
    except (httpx.HTTPError, ValueError) as exc:
        raise LLMUnavailableError(f"LLM API unreachable: {exc}") from exc


def response_text(response: Dict[str, Any]) -> str:
    blocks = response.get("content") or []
    return "".join(b.get("text") or "" for b in blocks if isinstance(b, dict) and b.get("type") == "text")


def response_tool_uses(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    blocks = response.get("content") or []
    return [b for b in blocks if isinstance(b, dict) and b.get("type") == "tool_use"]


def response_usage(response: Dict[str, Any]) -> Dict[str, int]:
    usage = response.get("usage") or {}
    return {
        "input_tokens": int(usage.get("input_tokens") or 0),
        "output_tokens": int(usage.get("output_tokens") or 0),
    }
