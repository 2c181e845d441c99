"""Tests for settings loading."""

from __future__ import annotations

import pydantic
import pytest

from vidtube.core.config import Settings

ACCESS_ENV = "APP_ACCESS_TOKEN_SECRET"
REFRESH_ENV = "APP_REFRESH_TOKEN_SECRET"


def test_token_secrets_have_no_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ACCESS_ENV, raising=False)
    monkeypatch.delenv(REFRESH_ENV, raising=False)

    with pytest.raises(pydantic.ValidationError) as excinfo:
        Settings(_env_file=None)

    missing = {error["loc"][0] for error in excinfo.value.errors()}
    assert missing == {"access_token_secret", "refresh_token_secret"}


def test_short_token_secret_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ACCESS_ENV, "too-short")
    monkeypatch.setenv(REFRESH_ENV, "r" * 40)

    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None)


def test_secrets_and_origins_load_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ACCESS_ENV, "a" * 40)
    monkeypatch.setenv(REFRESH_ENV, "r" * 40)
    monkeypatch.setenv("APP_CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("APP_COOKIE_SAMESITE", "Lax")

    loaded = Settings(_env_file=None)

    assert loaded.access_token_secret == "a" * 40
    assert loaded.refresh_token_secret == "r" * 40
    assert loaded.cors_origins == ["https://a.example", "https://b.example"]
    assert loaded.cookie_samesite == "lax"
