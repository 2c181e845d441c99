"""Pydantic models for account, session and profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LoginRequest(CamelModel):
    """Credentials for login; either username or email identifies the account."""

    username: str | None = None
    email: str | None = None
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class UpdateAccountRequest(CamelModel):
    full_name: str = ""
    email: EmailStr


class RegisterRequest(CamelModel):
    """Text fields of the multipart registration form; empty values are reported by the required-fields check."""

    full_name: str = ""
    email: EmailStr | Literal[""] = ""
    username: str = ""
    password: str = ""


class AccountPublic(CamelModel):
    """Account view without password or refresh token."""

    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class LoginResult(TokenPair):
    user: AccountPublic


class ChannelProfile(CamelModel):
    full_name: str
    username: str
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool
    avatar: str
    cover_image: str
    email: str


class VideoOwner(CamelModel):
    full_name: str
    username: str
    avatar: str


class WatchHistoryItem(CamelModel):
    """A watched video with its owner collapsed to a single object."""

    id: int
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime | None = None
    owner: VideoOwner
