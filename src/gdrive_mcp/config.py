"""OAuth client configuration loaded from the environment.

Environment Variables:
    GOOGLE_CLIENT_ID: Google OAuth client ID (required)
    GOOGLE_CLIENT_SECRET: Google OAuth client secret (required)
    GOOGLE_DRIVE_MCP_TOKEN_DIR: Token storage directory override
        (see gdrive_mcp.auth.token_storage)
"""

import os
from typing import Any

from pydantic import BaseModel, Field

CLIENT_ID_ENV = "GOOGLE_CLIENT_ID"
CLIENT_SECRET_ENV = "GOOGLE_CLIENT_SECRET"  # nosec B105 - environment variable name

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint


class ConfigurationError(ValueError):
    """Required configuration is missing or invalid."""


class OAuthClientConfig(BaseModel):
    """Credentials of the OAuth client registered with Google."""

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)

    @classmethod
    def from_env(
        cls, client_id: str | None = None, client_secret: str | None = None
    ) -> "OAuthClientConfig":
        """Load client credentials, preferring explicit arguments.

        Raises:
            ConfigurationError: If either value is missing.
        """
        client_id = client_id or os.environ.get(CLIENT_ID_ENV, "")
        client_secret = client_secret or os.environ.get(CLIENT_SECRET_ENV, "")

        if not client_id or not client_secret:
            raise ConfigurationError(
                "Google OAuth credentials not found. "
                f"Set {CLIENT_ID_ENV} and {CLIENT_SECRET_ENV} environment variables "
                "or pass --client-id and --client-secret."
            )

        return cls(client_id=client_id, client_secret=client_secret)

    def to_client_config(self, redirect_uri: str) -> dict[str, Any]:
        """Client configuration in the format expected by google-auth-oauthlib."""
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [redirect_uri],
            }
        }
