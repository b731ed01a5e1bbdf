"""Shared pytest fixtures for gdrive-mcp tests.

This module provides reusable fixtures for testing OAuth authentication,
credential storage, and Google API mocks.
"""

import time
from pathlib import Path
from typing import Any

import httpx
import pytest

from gdrive_mcp.auth.models import Credential
from gdrive_mcp.config import OAuthClientConfig

SCOPES = (
    "https://www.googleapis.com/auth/drive "
    "https://www.googleapis.com/auth/documents "
    "https://www.googleapis.com/auth/spreadsheets"
)


def _ms_from_now(seconds: int) -> int:
    return int((time.time() + seconds) * 1000)


# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def valid_credential() -> Credential:
    """Create a valid, non-expired credential."""
    return Credential(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        scope=SCOPES,
        token_type="Bearer",
        expiry_date=_ms_from_now(3600),
    )


@pytest.fixture
def expired_credential() -> Credential:
    """Create an expired credential that can still be refreshed."""
    return Credential(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        scope=SCOPES,
        expiry_date=_ms_from_now(-3600),
    )


@pytest.fixture
def expired_unrefreshable_credential() -> Credential:
    """Create an expired credential without a refresh token."""
    return Credential(
        access_token="expired_access_token",
        scope=SCOPES,
        expiry_date=_ms_from_now(-3600),
    )


@pytest.fixture
def client_config() -> OAuthClientConfig:
    """OAuth client credentials used by flows and sessions."""
    return OAuthClientConfig(client_id="test_client_id", client_secret="test_client_secret")


# =============================================================================
# Credential Storage Fixtures
# =============================================================================


@pytest.fixture
def temp_token_path(tmp_path: Path) -> Path:
    """Path for a temporary tokens.json in a not-yet-created directory."""
    return tmp_path / "google-drive-mcp" / "tokens.json"


@pytest.fixture
def credential_store(temp_token_path: Path):
    """Create a CredentialStore instance with temporary storage."""
    from gdrive_mcp.auth.token_storage import CredentialStore

    return CredentialStore(token_path=temp_token_path)


@pytest.fixture
def oauth_manager(credential_store):
    """Create an OAuthManager with temporary storage."""
    from gdrive_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(store=credential_store)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from real credentials and the user's token file."""
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    monkeypatch.delenv("GOOGLE_CLIENT_SECRET", raising=False)
    monkeypatch.setenv("GOOGLE_DRIVE_MCP_TOKEN_DIR", str(tmp_path / "default-token-dir"))


# =============================================================================
# HTTP Helpers
# =============================================================================


def _make_response(
    status_code: int = 200,
    json_data: Any = None,
    text: str | None = None,
    method: str = "GET",
    url: str = "https://www.googleapis.com/drive/v3/files",
) -> httpx.Response:
    """Build a real httpx.Response bound to a request, so raise_for_status works."""
    request = httpx.Request(method, url)
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


def _make_status_error(status_code: int, message: str = "boom") -> httpx.HTTPStatusError:
    """Build the HTTPStatusError httpx raises for a Google API error body."""
    response = _make_response(status_code, {"error": {"code": status_code, "message": message}})
    return httpx.HTTPStatusError(message, request=response.request, response=response)


@pytest.fixture
def make_response():
    """Factory for httpx responses returned by a mocked client."""
    return _make_response


@pytest.fixture
def make_status_error():
    """Factory for httpx status errors."""
    return _make_status_error


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
