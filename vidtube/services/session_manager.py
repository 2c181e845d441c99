"""Login, logout and refresh-token rotation.

Each account holds at most one refresh token. Login and refresh overwrite it,
logout clears it, and a refresh call is only honoured when the presented token
equals the stored one. Rotation is a conditional UPDATE, so of two concurrent
refresh calls presenting the same token only one can win.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import set_committed_value

from vidtube.core.errors import NotFoundError, TokenGenerationError, UnauthorizedError, ValidationError
from vidtube.db.models import Account
from vidtube.services.account_store import AccountStore
from vidtube.services.passwords import verify_password
from vidtube.services.tokens import InvalidTokenError, TokenIssuer

logger = logging.getLogger(__name__)

REUSE_MESSAGE = "Refresh token reuse detected"


@dataclass(slots=True)
class IssuedTokens:
    access_token: str
    refresh_token: str


@dataclass(slots=True)
class LoginOutcome:
    access_token: str
    refresh_token: str
    account: Account


def access_claims(account: Account) -> dict[str, str]:
    """Profile claims embedded in every access token."""

    return {"email": account.email, "username": account.username, "full_name": account.full_name}


class SessionManager:
    def __init__(self, store: AccountStore, issuer: TokenIssuer) -> None:
        self.store = store
        self.issuer = issuer

    async def login(self, *, username: str | None, email: str | None, password: str) -> LoginOutcome:
        """Verify credentials, issue a token pair and persist the refresh token."""

        if not (username and username.strip()) and not (email and email.strip()):
            raise ValidationError("Username or email is required")

        account = await self.store.find_by_username_or_email(username=username, email=email)
        if account is None:
            raise NotFoundError("User does not exist")

        if not await verify_password(account.password, password):
            logger.info("Rejected login for account %s: bad password", account.id)
            raise UnauthorizedError("Invalid user credentials")

        tokens = await self._issue_and_store(account)
        logger.info("Account %s logged in", account.id)
        return LoginOutcome(access_token=tokens.access_token, refresh_token=tokens.refresh_token, account=account)

    async def logout(self, account_id: int) -> None:
        await self.store.clear_refresh_token(account_id)
        logger.info("Account %s logged out", account_id)

    async def refresh(self, presented: str | None) -> IssuedTokens:
        """Exchange the current refresh token for a new pair."""

        if not presented:
            raise UnauthorizedError("Unauthorized request")

        try:
            subject = self.issuer.verify_refresh_token(presented)
        except InvalidTokenError as exc:
            raise UnauthorizedError(str(exc) or "Invalid refresh token") from exc

        account = await self.store.find_by_id(_parse_account_id(subject))
        if account is None:
            raise UnauthorizedError("Invalid refresh token")

        if account.refresh_token != presented:
            logger.warning("Refresh token reuse for account %s", account.id)
            raise UnauthorizedError(REUSE_MESSAGE)

        tokens = self._issue(account)
        try:
            rotated = await self.store.rotate_refresh_token(account.id, presented, tokens.refresh_token)
        except SQLAlchemyError as exc:
            raise TokenGenerationError() from exc
        if not rotated:
            logger.warning("Lost refresh race for account %s", account.id)
            raise UnauthorizedError(REUSE_MESSAGE)

        set_committed_value(account, "refresh_token", tokens.refresh_token)
        logger.info("Rotated refresh token for account %s", account.id)
        return tokens

    async def change_password(self, account_id: int, old_password: str, new_password: str) -> None:
        account = await self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError("User does not exist")

        if not await verify_password(account.password, old_password):
            raise ValidationError("Invalid old password")

        account.password = new_password
        await self.store.save(account, validate=False)
        logger.info("Password changed for account %s", account_id)

    def _issue(self, account: Account) -> IssuedTokens:
        try:
            return IssuedTokens(
                access_token=self.issuer.issue_access_token(account.id, access_claims(account)),
                refresh_token=self.issuer.issue_refresh_token(account.id),
            )
        except jwt.PyJWTError as exc:
            raise TokenGenerationError() from exc

    async def _issue_and_store(self, account: Account) -> IssuedTokens:
        tokens = self._issue(account)
        account.refresh_token = tokens.refresh_token
        try:
            await self.store.save(account, validate=False)
        except SQLAlchemyError as exc:
            raise TokenGenerationError() from exc
        return tokens


def _parse_account_id(subject: str) -> int:
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError("Invalid refresh token") from exc
