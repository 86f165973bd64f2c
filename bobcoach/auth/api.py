# -*- coding: utf-8 -*-
"""Auth — API endpoints.

Minimal local accounts: email + password, an HS256 token returned in the body
and mirrored into an http-only cookie. New accounts land in onboarding.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..config import settings
from ..onboarding.storage import start_onboarding
from ..profiles.storage import get_profile, update_profile_field
from .models import AuthResponse, LoginRequest, NameUpdateRequest, RegisterRequest, UserPublic
from .security import TOKEN_COOKIE_NAME, create_access_token, get_current_user, hash_password, verify_password
from .storage import create_user, get_user_by_email, get_user_by_id, update_user_name

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _session_user(row: dict) -> UserPublic:
    profile = get_profile(row["id"])
    return UserPublic(
        id=row["id"],
        email=row["email"],
        name=row.get("name"),
        onboarding_completed=bool(profile and profile.get("onboarding_completed")),
        created_at=row["created_at"],
    )


def _issue(user: dict, response: Response) -> AuthResponse:
    token = create_access_token(user_id=user["id"], email=user["email"])
    response.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        httponly=True,
        secure=bool(settings.cookie_secure),
        samesite="lax",
        max_age=int(settings.token_ttl_days) * 24 * 60 * 60,
        path="/",
    )
    return AuthResponse(user=_session_user(user), token=token)


@router.post("/register", response_model=AuthResponse, summary="Create an account and start onboarding")
def register(request: RegisterRequest, response: Response):
    if get_user_by_email(request.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = create_user(email=request.email, password_hash=hash_password(request.password), name=request.name)
    start_onboarding(user_id=user["id"])
    log.info("registered user %s", user["id"])
    return _issue(user, response)


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(request: LoginRequest, response: Response):
    user = get_user_by_email(request.email)
    if not user or not verify_password(request.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _issue(user, response)


@router.post("/logout", summary="Logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"status": "ok"}


@router.get("/me", response_model=UserPublic, summary="Current user and onboarding state")
def me(user: dict = Depends(get_current_user)):
    return _session_user(user)


@router.patch("/me", response_model=UserPublic, summary="Rename (kept in sync with the profile)")
def rename(request: NameUpdateRequest, user: dict = Depends(get_current_user)):
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name must not be blank")
    if get_profile(user["id"]):
        # Also updates users.name.
        update_profile_field(user_id=user["id"], field="name", value=name)
    else:
        update_user_name(user_id=user["id"], name=name)
    return _session_user(get_user_by_id(user["id"]))
