# -*- coding: utf-8 -*-
"""
Bob Diet Coach API

Chat-first diet coaching: food and weight logging, calorie targets,
weekly summaries and calibration.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .app_db import init_app_db
from .auth.api import router as auth_router
from .auth.security import get_current_user, get_current_user_from_request
from .cache.api import router as cache_router
from .chat.api import router as chat_router
from .config import settings
from .confirmations.api import router as confirmations_router
from .diet.api import router as diet_router
from .goals.api import router as goals_router
from .maintenance import maintenance
from .monitoring import init_error_tracking, setup_logging, track_message
from .onboarding.api import router as onboarding_router
from .profiles.api import router as profiles_router
from .subscriptions.api import router as subscriptions_router
from .summaries.api import router as summaries_router
from .usage.api import router as usage_router
from .weight.api import router as weight_router

setup_logging()
init_error_tracking()

log = logging.getLogger(__name__)

app = FastAPI(
    title="Bob Diet Coach",
    description="AI chat diet coach: food and weight logging, targets, weekly summaries",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def _startup() -> None:
    init_app_db(settings.app_db_path)
    maintenance.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    await maintenance.stop()


# Ensure the app DB exists even when lifespan events are not triggered (e.g. some test clients).
init_app_db(settings.app_db_path)


_AUTH_EXEMPT_PREFIXES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/log-error",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
)


@app.middleware("http")
async def _auth_gate(request: Request, call_next):
    path = request.url.path
    if request.method == "OPTIONS":
        return await call_next(request)
    if path.startswith("/api") and path != "/api/health" and not any(path.startswith(p) for p in _AUTH_EXEMPT_PREFIXES):
        try:
            user = get_current_user_from_request(request)
            request.state.user = user
        except HTTPException as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(onboarding_router)
app.include_router(weight_router)
app.include_router(diet_router)
app.include_router(chat_router)
app.include_router(confirmations_router)
app.include_router(cache_router)
app.include_router(usage_router)
app.include_router(subscriptions_router)
app.include_router(goals_router)
app.include_router(summaries_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": app.version,
        "timestamp": datetime.now().isoformat(),
    }


class ClientErrorReport(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    stack: Optional[str] = Field(None, max_length=20_000)
    url: Optional[str] = Field(None, max_length=2000)
    context: Dict[str, Any] = {}


@app.post("/api/log-error", summary="Client-side error report")
def log_client_error(report: ClientErrorReport):
    track_message(
        f"client error: {report.message}",
        context={"stack": report.stack, "url": report.url, **report.context},
    )
    return {"status": "ok"}


@app.get("/api/debug-auth", summary="Who am I (resolved from the token)")
def debug_auth(user: dict = Depends(get_current_user)):
    return {
        "authenticated": True,
        "user_id": user["id"],
        "email": user["email"],
        "name": user.get("name"),
    }


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("BOB_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("BOB_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("bobcoach.api:app", host=host, port=port, reload=False)
