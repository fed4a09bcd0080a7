"""Outward-facing auth and account payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr


class PublicUser(BaseModel):
    """User view safe to return to clients; never carries credentials."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: EmailStr
    full_name: str
    avatar_url: str
    cover_image_url: str | None = None
    created_at: datetime | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResult(TokenResponse):
    user: PublicUser
