"""OAuth authentication for Google Drive MCP.

This package runs the OAuth2 + PKCE authorization flow, persists the
resulting credential and exposes it as a self-refreshing session.

Quick Start:
    ```python
    from gdrive_mcp.auth import OAuthManager

    manager = OAuthManager()

    # Authenticate
    credential = await manager.authenticate(
        client_id="your-client-id",
        client_secret="your-client-secret"  # pragma: allowlist secret
    )

    # Open a session for API use
    session = await manager.open_session()
    token = await session.get_access_token()
    ```
"""

from gdrive_mcp.auth.models import Credential, FlowState, PKCEPair, TokenStatus
from gdrive_mcp.auth.oauth_manager import (
    GOOGLE_DRIVE_SCOPES,
    AuthorizationFlow,
    OAuthManager,
)
from gdrive_mcp.auth.session import CredentialSession, persist_rotated_credential
from gdrive_mcp.auth.token_storage import CredentialStore

__all__ = [
    "OAuthManager",
    "AuthorizationFlow",
    "CredentialSession",
    "CredentialStore",
    "Credential",
    "FlowState",
    "PKCEPair",
    "TokenStatus",
    "GOOGLE_DRIVE_SCOPES",
    "persist_rotated_credential",
]
