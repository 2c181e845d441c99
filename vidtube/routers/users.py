"""Account, session and profile endpoints."""

from __future__ import annotations

import logging

import pydantic
from fastapi import APIRouter, Body, Cookie, Depends, File, Form, Response, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.config import settings
from vidtube.core.dependencies import (
    get_account_store,
    get_current_account,
    get_media_uploader,
    get_session_manager,
    get_token_issuer,
)
from vidtube.core.errors import ValidationError
from vidtube.db.models import Account
from vidtube.db.session import get_session
from vidtube.schema.account import (
    AccountPublic,
    ChangePasswordRequest,
    ChannelProfile,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UpdateAccountRequest,
    WatchHistoryItem,
)
from vidtube.schema.envelope import ApiResponse, api_response
from vidtube.services import account_lifecycle, profile_read_model
from vidtube.services.account_store import AccountStore
from vidtube.services.file_intake import store_upload
from vidtube.services.media_upload import MediaUploader
from vidtube.services.session_manager import SessionManager
from vidtube.services.tokens import TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _set_session_cookies(response: Response, issuer: TokenIssuer, access_token: str, refresh_token: str) -> None:
    options = {"httponly": True, "secure": settings.cookie_secure, "samesite": settings.cookie_samesite, "path": "/"}
    response.set_cookie(
        ACCESS_COOKIE, access_token, max_age=int(issuer.access_expiry.total_seconds()), **options
    )
    response.set_cookie(
        REFRESH_COOKIE, refresh_token, max_age=int(issuer.refresh_expiry.total_seconds()), **options
    )


def _clear_session_cookies(response: Response) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key, path="/", httponly=True, secure=settings.cookie_secure, samesite=settings.cookie_samesite
        )


@router.post("/register", response_model=ApiResponse[AccountPublic], status_code=status.HTTP_201_CREATED)
async def register(
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    session: AsyncSession = Depends(get_session),
    store: AccountStore = Depends(get_account_store),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> ApiResponse[AccountPublic]:
    """Create an account from a multipart form with avatar and optional cover image."""

    try:
        request = RegisterRequest(full_name=full_name, email=email, username=username, password=password)
    except pydantic.ValidationError as exc:
        errors = jsonable_encoder(exc.errors(include_url=False))
        raise ValidationError("Invalid request payload", errors=errors) from exc

    avatar_path = await store_upload(avatar, settings.upload_temp_dir)
    cover_path = await store_upload(cover_image, settings.upload_temp_dir)

    account = await account_lifecycle.register_account(
        store, uploader, request, avatar_path=avatar_path, cover_path=cover_path
    )
    await session.commit()
    return api_response(status.HTTP_201_CREATED, account, "User registered successfully")


@router.post("/login", response_model=ApiResponse[LoginResult])
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> ApiResponse[LoginResult]:
    outcome = await manager.login(username=payload.username, email=payload.email, password=payload.password)
    await session.commit()

    _set_session_cookies(response, issuer, outcome.access_token, outcome.refresh_token)
    result = LoginResult(
        access_token=outcome.access_token,
        refresh_token=outcome.refresh_token,
        user=account_lifecycle.to_public(outcome.account),
    )
    return api_response(status.HTTP_200_OK, result, "User logged in successfully")


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    response: Response,
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse[dict]:
    await manager.logout(account.id)
    await session.commit()

    _clear_session_cookies(response)
    return api_response(status.HTTP_200_OK, {}, "User logged out successfully")


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
async def refresh_token(
    response: Response,
    payload: RefreshRequest | None = Body(None),
    cookie_token: str | None = Cookie(None, alias=REFRESH_COOKIE),
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> ApiResponse[TokenPair]:
    """Rotate the refresh token presented by cookie or request body."""

    presented = cookie_token or (payload.refresh_token if payload else None)
    tokens = await manager.refresh(presented)
    await session.commit()

    _set_session_cookies(response, issuer, tokens.access_token, tokens.refresh_token)
    pair = TokenPair(access_token=tokens.access_token, refresh_token=tokens.refresh_token)
    return api_response(status.HTTP_200_OK, pair, "Access token refreshed")


@router.post("/change-password", response_model=ApiResponse[dict])
async def change_password(
    payload: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse[dict]:
    await manager.change_password(account.id, payload.old_password, payload.new_password)
    await session.commit()
    return api_response(status.HTTP_200_OK, {}, "Password changed successfully")


@router.get("/current-user", response_model=ApiResponse[AccountPublic])
async def current_user(
    account: Account = Depends(get_current_account),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[AccountPublic]:
    public = await account_lifecycle.get_current_account(store, account.id)
    return api_response(status.HTTP_200_OK, public, "Current user fetched successfully")


@router.patch("/update-account", response_model=ApiResponse[AccountPublic])
async def update_account(
    payload: UpdateAccountRequest,
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[AccountPublic]:
    updated = await account_lifecycle.update_account_details(
        store, account.id, full_name=payload.full_name, email=payload.email
    )
    await session.commit()
    return api_response(status.HTTP_200_OK, updated, "Account details updated successfully")


@router.patch("/avatar", response_model=ApiResponse[AccountPublic])
async def update_avatar(
    avatar: UploadFile | None = File(None),
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
    store: AccountStore = Depends(get_account_store),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> ApiResponse[AccountPublic]:
    path = await store_upload(avatar, settings.upload_temp_dir)
    updated = await account_lifecycle.update_avatar(store, uploader, account.id, path)
    await session.commit()
    return api_response(status.HTTP_200_OK, updated, "Avatar image updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[AccountPublic])
async def update_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
    store: AccountStore = Depends(get_account_store),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> ApiResponse[AccountPublic]:
    path = await store_upload(cover_image, settings.upload_temp_dir)
    updated = await account_lifecycle.update_cover_image(store, uploader, account.id, path)
    await session.commit()
    return api_response(status.HTTP_200_OK, updated, "Cover image updated successfully")


@router.get("/c/{username}", response_model=ApiResponse[ChannelProfile])
async def channel_profile(
    username: str,
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ChannelProfile]:
    profile = await profile_read_model.get_channel_profile(session, account.id, username)
    return api_response(status.HTTP_200_OK, profile, "User channel fetched successfully")


@router.get("/history", response_model=ApiResponse[list[WatchHistoryItem]])
async def watch_history(
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[WatchHistoryItem]]:
    history = await profile_read_model.get_watch_history(session, account.id)
    return api_response(status.HTTP_200_OK, history, "Watch history fetched successfully")
