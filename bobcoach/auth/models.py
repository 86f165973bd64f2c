# -*- coding: utf-8 -*-
"""Auth — Pydantic models."""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(value: str) -> str:
    email = value.strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValueError("Invalid email address")
    return email


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    # Optional here; onboarding asks for it again.
    name: Optional[str] = Field(None, max_length=100)

    _email = field_validator("email")(_normalize_email)

    @field_validator("name")
    @classmethod
    def _blank_name(cls, value: Optional[str]) -> Optional[str]:
        return (value or "").strip() or None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class NameUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class UserPublic(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    onboarding_completed: bool = False
    created_at: str


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
