"""Data models for OAuth credentials and the authorization flow."""

import base64
import hashlib
import secrets
import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Access tokens without an expiry in the token response are assumed to last an hour
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


def _now_ms() -> int:
    return int(time.time() * 1000)


class TokenStatus(str, Enum):
    """Status of the stored credential."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class FlowState(str, Enum):
    """States of the interactive authorization flow."""

    IDLE = "idle"
    AWAITING_USER_CONSENT = "awaiting_user_consent"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    COMPLETE = "complete"
    FAILED = "failed"


class Credential(BaseModel):
    """Access/refresh token bundle authorizing API calls.

    A credential without a refresh token cannot be renewed once its access
    token expires; the authorization flow must then be run again.

    Attributes:
        access_token: Bearer token sent with API requests.
        refresh_token: Long-lived token used to mint new access tokens.
        scope: Space-separated granted scopes.
        token_type: Token type, normally "Bearer".
        expiry_date: Access token expiry as epoch milliseconds.
    """

    access_token: str
    refresh_token: str | None = None
    scope: str = ""
    token_type: str = "Bearer"
    expiry_date: int

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    def is_expired(self, buffer_seconds: int = 0) -> bool:
        """Check whether the access token is expired.

        Args:
            buffer_seconds: Treat the token as expired this many seconds early.

        Returns:
            True if the access token is (or is about to be) expired.
        """
        return self.expiry_date - buffer_seconds * 1000 <= _now_ms()

    @classmethod
    def from_token_response(cls, data: dict[str, Any]) -> "Credential":
        """Build a credential from a token endpoint response.

        Accepts ``expiry_date`` (epoch ms), oauthlib's ``expires_at`` (epoch
        seconds) or ``expires_in`` (seconds from now), and a scope given as a
        string or a list.
        """
        if data.get("expiry_date") is not None:
            expiry_date = int(data["expiry_date"])
        elif data.get("expires_at") is not None:
            expiry_date = int(float(data["expires_at"]) * 1000)
        else:
            lifetime = int(data.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS)
            expiry_date = _now_ms() + lifetime * 1000

        scope = data.get("scope") or ""
        if isinstance(scope, (list, tuple)):
            scope = " ".join(scope)

        return cls(  # nosec B106 - "Bearer" is OAuth token type, not a password
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            scope=scope,
            token_type=data.get("token_type") or "Bearer",
            expiry_date=expiry_date,
        )


class PKCEPair(BaseModel):
    """PKCE code verifier and its S256 challenge.

    Generated fresh for each authorization attempt and never persisted.
    """

    verifier: str = Field(min_length=43, max_length=128)
    challenge: str

    @staticmethod
    def _b64url(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    @classmethod
    def generate(cls) -> "PKCEPair":
        verifier = cls._b64url(secrets.token_bytes(32))
        challenge = cls._b64url(hashlib.sha256(verifier.encode("ascii")).digest())
        return cls(verifier=verifier, challenge=challenge)
