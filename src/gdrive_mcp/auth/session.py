"""Authenticated credential session with transparent token refresh.

The session owns the live credential. When its access token has expired the
session renews it with google-auth and emits the rotated credential to an
injected refresh handler. The default handler persists rotations through the
CredentialStore, so callers never refresh or persist tokens themselves.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from gdrive_mcp.auth.models import DEFAULT_TOKEN_LIFETIME_SECONDS, Credential
from gdrive_mcp.auth.token_storage import CredentialStore
from gdrive_mcp.config import GOOGLE_TOKEN_URI, OAuthClientConfig
from gdrive_mcp.errors import AuthenticationError

logger = logging.getLogger(__name__)

RefreshHandler = Callable[[Credential], None]

# Renew slightly before the provider's expiry to avoid racing it mid-request
REFRESH_BUFFER_SECONDS = 60


def persist_rotated_credential(store: CredentialStore) -> RefreshHandler:
    """Build a refresh handler that saves rotated credentials to ``store``.

    Rotations without a refresh token are skipped so a stored refresh token
    is never replaced by its absence.
    """

    def handler(credential: Credential) -> None:
        if not credential.refresh_token:
            logger.info("Rotated credential has no refresh token; keeping stored record")
            return
        store.save(credential)
        logger.info("Persisted rotated credential to %s", store.token_path)

    return handler


def credential_to_google(credential: Credential, client: OAuthClientConfig) -> Credentials:
    """Convert a Credential to google-auth Credentials."""
    expiry = datetime.fromtimestamp(credential.expiry_date / 1000, tz=timezone.utc)
    return Credentials(  # nosec B106 - token_uri is public Google OAuth endpoint
        token=credential.access_token,
        refresh_token=credential.refresh_token,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=client.client_id,
        client_secret=client.client_secret,
        scopes=credential.scope.split() or None,
        # google-auth compares against naive UTC datetimes
        expiry=expiry.replace(tzinfo=None),
    )


def credential_from_google(credentials: Credentials, previous: Credential) -> Credential:
    """Convert refreshed google-auth Credentials back to a Credential."""
    if credentials.expiry:
        expires_at = credentials.expiry
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        expiry_date = int(expires_at.timestamp() * 1000)
    else:
        now = datetime.now(timezone.utc).timestamp()
        expiry_date = int((now + DEFAULT_TOKEN_LIFETIME_SECONDS) * 1000)

    granted = getattr(credentials, "granted_scopes", None)
    scope = " ".join(granted) if granted else previous.scope

    return Credential(
        access_token=credentials.token,
        refresh_token=credentials.refresh_token,
        scope=scope,
        token_type=previous.token_type,
        expiry_date=expiry_date,
    )


class CredentialSession:
    """Live credential exposed as an access-token source for API calls.

    Attributes:
        credential: The current in-memory credential.

    Example:
        ```python
        session = CredentialSession(
            credential, client_config, on_refresh=persist_rotated_credential(store)
        )
        token = await session.get_access_token()
        ...
        await session.aclose()
        ```
    """

    def __init__(
        self,
        credential: Credential,
        client_config: OAuthClientConfig,
        on_refresh: RefreshHandler | None = None,
    ) -> None:
        self._credential = credential
        self._client_config = client_config
        self._on_refresh = on_refresh
        self._refresh_lock = asyncio.Lock()
        self._pending: set[asyncio.Future] = set()

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def is_authenticated(self) -> bool:
        """False once the access token expired and cannot be renewed."""
        return not self._credential.is_expired() or self._credential.can_refresh

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing it first if needed.

        Raises:
            AuthenticationError: If the token expired and cannot be renewed.
        """
        async with self._refresh_lock:
            if self._credential.is_expired(buffer_seconds=REFRESH_BUFFER_SECONDS):
                await self._refresh()
            return self._credential.access_token

    async def _refresh(self) -> None:
        if not self._credential.can_refresh:
            if not self._credential.is_expired():
                # Still usable for a few more seconds
                return
            raise AuthenticationError(
                "Access token expired and no refresh token is available. "
                "Re-authenticate using: gdrive-mcp setup",
                status_code=401,
            )

        logger.info("Access token expired, refreshing...")
        google_credentials = credential_to_google(self._credential, self._client_config)

        # Run refresh in executor (blocking)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, google_credentials.refresh, Request())
        except RefreshError as e:
            raise AuthenticationError(
                f"Token refresh failed: {e}. Re-authenticate using: gdrive-mcp setup",
                status_code=401,
                original_error=e,
            ) from e

        self._credential = credential_from_google(google_credentials, self._credential)
        self._emit_rotation(self._credential)

    def _emit_rotation(self, credential: Credential) -> None:
        """Hand the rotated credential to the refresh handler without waiting."""
        if self._on_refresh is None:
            return

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._on_refresh, credential)
        self._pending.add(future)
        future.add_done_callback(self._on_rotation_done)

    def _on_rotation_done(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Failed to persist refreshed credential: %s", error, exc_info=error
            )

    async def aclose(self) -> None:
        """Wait for outstanding refresh persistence to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
