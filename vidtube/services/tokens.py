"""JWT issuance and verification for access and refresh tokens."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(ValueError):
    """Raised when a token fails signature, expiry or claim checks."""


class TokenIssuer:
    """Create and verify short-lived access tokens and rotating refresh tokens.

    Access and refresh tokens are signed with separate secrets, so one kind can
    never be replayed as the other. Every refresh token carries a random `jti`
    so two tokens issued for the same account within one second still differ.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_expiry: timedelta = timedelta(minutes=15),
        refresh_expiry: timedelta = timedelta(days=10),
        algorithm: str = "HS256",
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("Token secrets cannot be empty")

        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_expiry = access_expiry
        self.refresh_expiry = refresh_expiry
        self.algorithm = algorithm

    def issue_access_token(self, account_id: int | str, claims: dict[str, Any] | None = None) -> str:
        """Sign an access token carrying the account id and profile claims."""

        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = dict(claims or {})
        payload.update(
            {
                "sub": str(account_id),
                "type": ACCESS_TOKEN_TYPE,
                "iat": now,
                "exp": now + self.access_expiry,
            }
        )
        return jwt.encode(payload, self.access_secret, algorithm=self.algorithm)

    def issue_refresh_token(self, account_id: int | str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + self.refresh_expiry,
        }
        return jwt.encode(payload, self.refresh_secret, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Return the decoded claims of a valid access token."""

        return self._decode(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> str:
        """Return the account id carried by a valid refresh token."""

        return self._decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)["sub"]

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Rejected %s token: %s", expected_type, exc)
            raise InvalidTokenError(str(exc)) from exc

        if payload.get("type") != expected_type:
            raise InvalidTokenError(f"Expected a {expected_type} token")
        return payload
