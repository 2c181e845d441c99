"""Registration and profile updates."""

from __future__ import annotations

import logging
from pathlib import Path

from vidtube.core.errors import ConflictError, InternalError, NotFoundError, UpstreamError, ValidationError
from vidtube.db.models import Account
from vidtube.schema.account import AccountPublic, RegisterRequest
from vidtube.services.account_store import AccountStore, normalise_email
from vidtube.services.media_upload import MediaUploader

logger = logging.getLogger(__name__)


def to_public(account: Account) -> AccountPublic:
    """Project an account without password or refresh token."""

    return AccountPublic.model_validate(account)


async def register_account(
    store: AccountStore,
    uploader: MediaUploader,
    request: RegisterRequest,
    *,
    avatar_path: Path | None,
    cover_path: Path | None = None,
) -> AccountPublic:
    """Create an account after uploading its avatar and optional cover image."""

    fields = [request.full_name, request.email, request.username, request.password]
    if any(not (value or "").strip() for value in fields):
        _discard(avatar_path, cover_path)
        raise ValidationError("All fields are required")

    existing = await store.find_by_username_or_email(username=request.username, email=request.email)
    if existing is not None:
        _discard(avatar_path, cover_path)
        raise ConflictError("User with email or username already exists")

    if avatar_path is None:
        _discard(cover_path)
        raise ValidationError("Avatar file is required")

    try:
        avatar = await uploader.upload(avatar_path)
    except UpstreamError:
        _discard(cover_path)
        raise
    cover = await uploader.upload(cover_path)
    if avatar is None or not avatar.url:
        raise UpstreamError("Error while uploading avatar")

    account = await store.create(
        full_name=request.full_name.strip(),
        avatar=avatar.url,
        cover_image=cover.url if cover else "",
        email=request.email,
        password=request.password,
        username=request.username,
    )

    created = await store.find_by_id(account.id)
    if created is None:
        raise InternalError("Something went wrong while registering the user")

    logger.info("Registered account %s (%s)", created.id, created.username)
    return to_public(created)


async def get_current_account(store: AccountStore, account_id: int) -> AccountPublic:
    account = await store.find_by_id(account_id)
    if account is None:
        raise NotFoundError("User does not exist")
    return to_public(account)


async def update_account_details(store: AccountStore, account_id: int, *, full_name: str, email: str) -> AccountPublic:
    """Replace full name and email."""

    if not (full_name or "").strip() or not (email or "").strip():
        raise ValidationError("All fields are required")

    account = await store.update_by_id(
        account_id,
        {"full_name": full_name.strip(), "email": normalise_email(email)},
        return_updated=True,
    )
    if account is None:
        raise NotFoundError("User does not exist")
    return to_public(account)


async def update_avatar(store: AccountStore, uploader: MediaUploader, account_id: int, path: Path | None) -> AccountPublic:
    return await _update_media(store, uploader, account_id, path, field="avatar", label="Avatar")


async def update_cover_image(
    store: AccountStore, uploader: MediaUploader, account_id: int, path: Path | None
) -> AccountPublic:
    return await _update_media(store, uploader, account_id, path, field="cover_image", label="Cover image")


async def _update_media(
    store: AccountStore,
    uploader: MediaUploader,
    account_id: int,
    path: Path | None,
    *,
    field: str,
    label: str,
) -> AccountPublic:
    if path is None:
        raise ValidationError(f"{label} file is missing")

    uploaded = await uploader.upload(path)
    if uploaded is None or not uploaded.url:
        raise UpstreamError(f"Error while uploading {label.lower()}")

    account = await store.update_by_id(account_id, {field: uploaded.url}, return_updated=True)
    if account is None:
        raise NotFoundError("User does not exist")
    logger.info("Updated %s for account %s", field, account_id)
    return to_public(account)


def _discard(*paths: Path | None) -> None:
    for path in paths:
        if path is not None:
            path.unlink(missing_ok=True)
