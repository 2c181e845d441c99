"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache

from fastapi import Cookie, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.config import settings
from vidtube.core.errors import UnauthorizedError
from vidtube.db.models import Account
from vidtube.db.session import get_session
from vidtube.services.account_store import AccountStore
from vidtube.services.media_upload import MediaUploader
from vidtube.services.session_manager import SessionManager
from vidtube.services.tokens import InvalidTokenError, TokenIssuer

logger = logging.getLogger(__name__)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Return the process-wide token issuer."""

    return TokenIssuer(
        access_secret=settings.access_token_secret,
        refresh_secret=settings.refresh_token_secret,
        access_expiry=timedelta(minutes=settings.access_token_expiry_minutes),
        refresh_expiry=timedelta(days=settings.refresh_token_expiry_days),
        algorithm=settings.jwt_algorithm,
    )


def get_media_uploader() -> MediaUploader:
    return MediaUploader(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        base_url=settings.cloudinary_upload_url,
    )


def get_account_store(session: AsyncSession = Depends(get_session)) -> AccountStore:
    return AccountStore(session)


def get_session_manager(
    store: AccountStore = Depends(get_account_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> SessionManager:
    return SessionManager(store, issuer)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_account(
    access_token: str | None = Cookie(None, alias="accessToken"),
    authorization: str | None = Header(None),
    store: AccountStore = Depends(get_account_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Account:
    """Resolve the account behind the access token in the cookie or bearer header."""

    token = access_token or _bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Unauthorized request")

    try:
        claims = issuer.verify_access_token(token)
        account_id = int(claims["sub"])
    except (InvalidTokenError, ValueError) as exc:
        logger.warning("Rejected access token: %s", exc)
        raise UnauthorizedError("Invalid access token") from exc

    account = await store.find_by_id(account_id)
    if account is None:
        raise UnauthorizedError("Invalid access token")
    return account
