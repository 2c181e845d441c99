"""Tests for login, logout, refresh rotation and password change."""

from __future__ import annotations

import jwt
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import NotFoundError, TokenGenerationError, UnauthorizedError, ValidationError
from vidtube.services.account_store import AccountStore
from vidtube.services.passwords import verify_password
from vidtube.services.session_manager import REUSE_MESSAGE, SessionManager
from vidtube.services.tokens import TokenIssuer
from vidtube.tests.factories import add_account


@pytest.fixture
def manager(session: AsyncSession, issuer: TokenIssuer) -> SessionManager:
    return SessionManager(AccountStore(session), issuer)


@pytest.mark.asyncio
async def test_login_by_username_stores_returned_refresh_token(session, manager, issuer) -> None:
    account = await add_account(session, "alice", email="a@x.com", password="correct horse")

    outcome = await manager.login(username="alice", email=None, password="correct horse")

    assert outcome.access_token
    assert issuer.verify_refresh_token(outcome.refresh_token) == str(account.id)
    stored = await AccountStore(session).find_by_id(account.id)
    assert stored.refresh_token == outcome.refresh_token
    assert outcome.account.username == "alice"


@pytest.mark.asyncio
async def test_login_by_email_is_case_insensitive(session, manager) -> None:
    await add_account(session, "bob", email="bob@x.com", password="pw")

    outcome = await manager.login(username=None, email="  BOB@X.com ", password="pw")

    assert outcome.account.username == "bob"


@pytest.mark.asyncio
async def test_login_access_token_carries_profile_claims(session, manager, issuer) -> None:
    await add_account(session, "carol", email="c@x.com", full_name="Carol King", password="pw")

    outcome = await manager.login(username="carol", email=None, password="pw")
    claims = issuer.verify_access_token(outcome.access_token)

    assert claims["username"] == "carol"
    assert claims["email"] == "c@x.com"
    assert claims["full_name"] == "Carol King"


@pytest.mark.asyncio
async def test_login_requires_username_or_email(manager) -> None:
    with pytest.raises(ValidationError):
        await manager.login(username="  ", email=None, password="pw")


@pytest.mark.asyncio
async def test_login_unknown_account(manager) -> None:
    with pytest.raises(NotFoundError):
        await manager.login(username="ghost", email=None, password="pw")


@pytest.mark.asyncio
async def test_login_wrong_password_leaves_session_untouched(session, manager) -> None:
    account = await add_account(session, "dave", password="right")

    with pytest.raises(UnauthorizedError):
        await manager.login(username="dave", email=None, password="wrong")

    assert account.refresh_token is None


@pytest.mark.asyncio
async def test_refresh_rotates_and_stale_token_is_rejected(session, manager) -> None:
    account = await add_account(session, "erin", password="pw")
    first = await manager.login(username="erin", email=None, password="pw")

    rotated = await manager.refresh(first.refresh_token)

    assert rotated.refresh_token != first.refresh_token
    stored = await AccountStore(session).find_by_id(account.id)
    assert stored.refresh_token == rotated.refresh_token

    with pytest.raises(UnauthorizedError, match=REUSE_MESSAGE):
        await manager.refresh(first.refresh_token)

    stored = await AccountStore(session).find_by_id(account.id)
    assert stored.refresh_token == rotated.refresh_token


@pytest.mark.asyncio
async def test_refresh_with_mismatched_token_does_not_mutate(session, manager, issuer) -> None:
    account = await add_account(session, "frank", password="pw")
    await manager.login(username="frank", email=None, password="pw")
    stored_before = (await AccountStore(session).find_by_id(account.id)).refresh_token
    other = issuer.issue_refresh_token(account.id)

    with pytest.raises(UnauthorizedError):
        await manager.refresh(other)

    assert (await AccountStore(session).find_by_id(account.id)).refresh_token == stored_before


@pytest.mark.asyncio
async def test_refresh_without_token(manager) -> None:
    with pytest.raises(UnauthorizedError, match="Unauthorized request"):
        await manager.refresh(None)


@pytest.mark.asyncio
async def test_refresh_with_garbage_token_wraps_verifier_message(manager) -> None:
    with pytest.raises(UnauthorizedError) as excinfo:
        await manager.refresh("not-a-jwt")

    assert excinfo.value.status_code == 401
    assert excinfo.value.__cause__ is not None


@pytest.mark.asyncio
async def test_refresh_for_missing_account(manager, issuer) -> None:
    with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
        await manager.refresh(issuer.issue_refresh_token(999))


@pytest.mark.asyncio
async def test_refresh_losing_the_race_is_rejected(session, manager, monkeypatch) -> None:
    await add_account(session, "gina", password="pw")
    outcome = await manager.login(username="gina", email=None, password="pw")

    async def lost_race(account_id, expected, new_token):
        return False

    monkeypatch.setattr(manager.store, "rotate_refresh_token", lost_race)

    with pytest.raises(UnauthorizedError, match=REUSE_MESSAGE):
        await manager.refresh(outcome.refresh_token)


@pytest.mark.asyncio
async def test_logout_clears_refresh_token_and_blocks_refresh(session, manager) -> None:
    account = await add_account(session, "hank", password="pw")
    outcome = await manager.login(username="hank", email=None, password="pw")

    await manager.logout(account.id)

    assert (await AccountStore(session).find_by_id(account.id)).refresh_token is None
    with pytest.raises(UnauthorizedError):
        await manager.refresh(outcome.refresh_token)


@pytest.mark.asyncio
async def test_change_password(session, manager) -> None:
    account = await add_account(session, "ivy", password="old")

    await manager.change_password(account.id, "old", "new")

    stored = await AccountStore(session).find_by_id(account.id)
    assert await verify_password(stored.password, "new")
    assert not await verify_password(stored.password, "old")


@pytest.mark.asyncio
async def test_change_password_rejects_wrong_old_password(session, manager) -> None:
    account = await add_account(session, "jack", password="old")

    with pytest.raises(ValidationError, match="Invalid old password"):
        await manager.change_password(account.id, "nope", "new")


@pytest.mark.asyncio
async def test_token_signing_failure_is_wrapped(session, manager, monkeypatch) -> None:
    await add_account(session, "kim", password="pw")

    def broken(*args, **kwargs):
        raise jwt.PyJWTError("signing backend down")

    monkeypatch.setattr(manager.issuer, "issue_refresh_token", broken)

    with pytest.raises(TokenGenerationError) as excinfo:
        await manager.login(username="kim", email=None, password="pw")

    assert isinstance(excinfo.value.__cause__, jwt.PyJWTError)
    assert excinfo.value.status_code == 500
