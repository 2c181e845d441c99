"""Shared fixtures: a throwaway SQLite database and a token issuer."""

from __future__ import annotations

import os
from datetime import timedelta

# Settings refuse to load without signing keys; set them before any vidtube import.
os.environ.setdefault("APP_ACCESS_TOKEN_SECRET", "test-env-access-secret-0123456789abcdef")
os.environ.setdefault("APP_REFRESH_TOKEN_SECRET", "test-env-refresh-secret-0123456789abcdef")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vidtube.db.models import Base
from vidtube.services.tokens import TokenIssuer


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vidtube.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(
        access_secret="test-access-secret-0123456789abcdef",
        refresh_secret="test-refresh-secret-0123456789abcdef",
        access_expiry=timedelta(minutes=5),
        refresh_expiry=timedelta(days=1),
    )
