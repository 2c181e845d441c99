"""Account persistence: lookups, writes and refresh-token rotation."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import inspect, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import ConflictError, ValidationError
from vidtube.db.models import Account
from vidtube.services.passwords import hash_password

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("username", "email", "full_name", "avatar", "password")


def normalise_username(value: str) -> str:
    return value.strip().lower()


def normalise_email(value: str) -> str:
    return value.strip().lower()


class AccountStore:
    """Credential store over an async session.

    Writes are flushed, never committed; the request handler owns the
    transaction. Passwords are hashed here whenever the attribute changed.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_username_or_email(self, username: str | None = None, email: str | None = None) -> Account | None:
        """Return the account matching either identifier."""

        conditions = []
        if username and username.strip():
            conditions.append(Account.username == normalise_username(username))
        if email and email.strip():
            conditions.append(Account.email == normalise_email(email))
        if not conditions:
            return None
        return await self.session.scalar(select(Account).where(or_(*conditions)).limit(1))

    async def find_by_id(self, account_id: int) -> Account | None:
        return await self.session.get(Account, account_id, populate_existing=True)

    async def create(self, **fields: Any) -> Account:
        """Insert a new account; raises ConflictError on duplicate username or email."""

        account = Account(**fields)
        account.username = normalise_username(account.username or "")
        account.email = normalise_email(account.email or "")
        self._validate(account)
        await self._hash_password_if_changed(account)
        self.session.add(account)
        await self._flush()
        return account

    async def update_by_id(
        self, account_id: int, patch: dict[str, Any], *, return_updated: bool = True
    ) -> Account | None:
        """Apply `patch` as one UPDATE statement and optionally return the fresh row."""

        if "email" in patch:
            patch = {**patch, "email": normalise_email(patch["email"])}
        if "password" in patch:
            patch = {**patch, "password": await hash_password(patch["password"])}

        stmt = update(Account).where(Account.id == account_id).values(**patch)
        try:
            await self.session.execute(stmt.execution_options(synchronize_session=False))
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("User with email or username already exists") from exc

        if not return_updated:
            return None
        return await self.find_by_id(account_id)

    async def save(self, account: Account, *, validate: bool = True) -> Account:
        """Flush pending changes on `account`; `validate=False` skips field checks."""

        if validate:
            self._validate(account)
        await self._hash_password_if_changed(account)
        self.session.add(account)
        await self._flush()
        return account

    async def rotate_refresh_token(self, account_id: int, expected: str, new_token: str) -> bool:
        """Swap the stored refresh token only if it still equals `expected`."""

        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.refresh_token == expected)
            .values(refresh_token=new_token)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def clear_refresh_token(self, account_id: int) -> None:
        await self.update_by_id(account_id, {"refresh_token": None}, return_updated=False)

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("User with email or username already exists") from exc

    @staticmethod
    def _validate(account: Account) -> None:
        missing = [name for name in REQUIRED_FIELDS if not (getattr(account, name) or "").strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    @staticmethod
    async def _hash_password_if_changed(account: Account) -> None:
        state = inspect(account)
        if account.password and (state.transient or state.attrs.password.history.has_changes()):
            account.password = await hash_password(account.password)
