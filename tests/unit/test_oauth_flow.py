"""Unit tests for the OAuth authorization flow and OAuthManager."""

import os
import socket
import threading
import time
from typing import Any
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from gdrive_mcp.auth.models import Credential, FlowState, TokenStatus
from gdrive_mcp.auth.oauth_manager import AuthorizationFlow, OAuthManager, _FlowOutcome
from gdrive_mcp.auth.session import CredentialSession
from gdrive_mcp.config import ConfigurationError
from gdrive_mcp.errors import (
    AuthorizationDeniedError,
    AuthorizationFlowError,
    AuthorizationTimeoutError,
    MissingAuthorizationCodeError,
    TokenExchangeError,
)


@pytest.fixture
def flow(client_config, credential_store) -> AuthorizationFlow:
    """Flow bound to an ephemeral loopback port without opening a browser."""
    return AuthorizationFlow(
        client_config,
        credential_store,
        host="127.0.0.1",
        port=0,
        timeout=5,
        open_browser=False,
    )


def start_flow(flow: AuthorizationFlow) -> tuple[threading.Thread, dict[str, Any]]:
    """Run the flow in a thread and wait until it listens for the callback."""
    outcome: dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["credential"] = flow.run()
        except BaseException as e:
            outcome["error"] = e

    thread = threading.Thread(target=target, daemon=True)
    thread.start()

    deadline = time.monotonic() + 5
    while flow.state is not FlowState.AWAITING_CALLBACK:
        if not thread.is_alive() or time.monotonic() > deadline:
            raise AssertionError(f"flow did not start listening: {outcome}")
        time.sleep(0.01)
    return thread, outcome


def query_of(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def callback(flow: AuthorizationFlow, **params: str) -> httpx.Response:
    return httpx.get(flow.redirect_uri, params=params, timeout=5)


@pytest.mark.unit
class TestAuthorizationUrl:
    """Tests for the authorization URL presented to the user."""

    def test_should_request_offline_consent_with_pkce(self, flow: AuthorizationFlow) -> None:
        thread, _ = start_flow(flow)
        try:
            query = query_of(flow.auth_url)
        finally:
            callback(flow, error="access_denied", state="x")
            thread.join(5)

        assert query["access_type"] == ["offline"]
        assert query["prompt"] == ["consent"]
        assert query["code_challenge_method"] == ["S256"]
        assert query["response_type"] == ["code"]
        assert query["client_id"] == ["test_client_id"]
        assert query["redirect_uri"] == [flow.redirect_uri]
        scopes = query["scope"][0].split()
        assert "https://www.googleapis.com/auth/drive" in scopes
        assert "https://www.googleapis.com/auth/documents" in scopes
        assert "https://www.googleapis.com/auth/spreadsheets" in scopes

    def test_redirect_uri_uses_bound_port(self, flow: AuthorizationFlow) -> None:
        thread, _ = start_flow(flow)
        try:
            parsed = urlparse(flow.redirect_uri)
        finally:
            callback(flow, error="access_denied", state="x")
            thread.join(5)

        assert parsed.path == "/oauth2callback"
        assert parsed.port and parsed.port != 0


@pytest.mark.unit
class TestAuthorizationCallback:
    """Tests for callback handling."""

    def test_should_complete_and_persist_credential(
        self, flow: AuthorizationFlow, credential_store, valid_credential: Credential
    ) -> None:
        with patch.object(
            AuthorizationFlow, "_exchange_code", return_value=valid_credential
        ) as mock_exchange:
            thread, outcome = start_flow(flow)
            state = query_of(flow.auth_url)["state"][0]

            response = callback(flow, code="abc123", state=state)
            thread.join(5)

        assert response.status_code == 200
        assert "Authentication Successful" in response.text
        assert outcome["credential"] == valid_credential
        assert flow.state is FlowState.COMPLETE
        assert credential_store.load() == valid_credential
        assert mock_exchange.call_args.args[0] == "abc123"

    def test_should_not_persist_without_refresh_token(
        self, flow: AuthorizationFlow, credential_store
    ) -> None:
        credential = Credential(access_token="t1", expiry_date=int(time.time() * 1000) + 60_000)

        with patch.object(AuthorizationFlow, "_exchange_code", return_value=credential):
            thread, outcome = start_flow(flow)
            state = query_of(flow.auth_url)["state"][0]
            callback(flow, code="abc123", state=state)
            thread.join(5)

        assert outcome["credential"] == credential
        assert credential_store.load() is None

    def test_denied_consent_fails_without_exchange(self, flow: AuthorizationFlow) -> None:
        with patch.object(AuthorizationFlow, "_exchange_code") as mock_exchange:
            thread, outcome = start_flow(flow)
            response = callback(flow, error="access_denied")
            thread.join(5)

        assert response.status_code == 400
        assert "Authentication Failed" in response.text
        assert isinstance(outcome["error"], AuthorizationDeniedError)
        assert outcome["error"].reason == "access_denied"
        assert flow.state is FlowState.FAILED
        mock_exchange.assert_not_called()

    def test_missing_code_fails(self, flow: AuthorizationFlow) -> None:
        thread, outcome = start_flow(flow)
        state = query_of(flow.auth_url)["state"][0]

        response = callback(flow, state=state)
        thread.join(5)

        assert response.status_code == 400
        assert "No authorization code received" in response.text
        assert isinstance(outcome["error"], MissingAuthorizationCodeError)

    def test_bare_callback_reports_missing_code(self, flow: AuthorizationFlow) -> None:
        with patch.object(AuthorizationFlow, "_exchange_code") as mock_exchange:
            thread, outcome = start_flow(flow)
            response = httpx.get(flow.redirect_uri, timeout=5)
            thread.join(5)

        assert response.status_code == 400
        assert "No authorization code received" in response.text
        assert isinstance(outcome["error"], MissingAuthorizationCodeError)
        assert flow.state is FlowState.FAILED
        mock_exchange.assert_not_called()

    def test_state_mismatch_fails(self, flow: AuthorizationFlow) -> None:
        with patch.object(AuthorizationFlow, "_exchange_code") as mock_exchange:
            thread, outcome = start_flow(flow)
            response = callback(flow, code="abc123", state="forged")
            thread.join(5)

        assert response.status_code == 500
        assert isinstance(outcome["error"], AuthorizationFlowError)
        assert "state mismatch" in outcome["error"].message
        mock_exchange.assert_not_called()

    def test_exchange_failure_fails_flow(self, flow: AuthorizationFlow, credential_store) -> None:
        with patch.object(
            AuthorizationFlow, "_exchange_code", side_effect=ValueError("invalid_grant")
        ):
            thread, outcome = start_flow(flow)
            state = query_of(flow.auth_url)["state"][0]
            response = callback(flow, code="abc123", state=state)
            thread.join(5)

        assert response.status_code == 500
        assert isinstance(outcome["error"], TokenExchangeError)
        assert "invalid_grant" in outcome["error"].message
        assert credential_store.load() is None

    def test_unrelated_paths_are_ignored(
        self, flow: AuthorizationFlow, valid_credential: Credential
    ) -> None:
        with patch.object(AuthorizationFlow, "_exchange_code", return_value=valid_credential):
            thread, outcome = start_flow(flow)
            base = flow.redirect_uri.rsplit("/", 1)[0]

            favicon = httpx.get(f"{base}/favicon.ico", timeout=5)
            assert favicon.status_code == 404
            assert flow.state is FlowState.AWAITING_CALLBACK

            state = query_of(flow.auth_url)["state"][0]
            callback(flow, code="abc123", state=state)
            thread.join(5)

        assert outcome["credential"] == valid_credential


@pytest.mark.unit
class TestAuthorizationLifecycle:
    """Tests for timeout, listener shutdown and single use."""

    def test_should_time_out_and_release_port(self, client_config, credential_store) -> None:
        flow = AuthorizationFlow(
            client_config,
            credential_store,
            host="127.0.0.1",
            port=0,
            timeout=0.2,
            open_browser=False,
        )

        with pytest.raises(AuthorizationTimeoutError):
            flow.run()

        assert flow.state is FlowState.FAILED
        with pytest.raises(httpx.ConnectError):
            httpx.get(flow.redirect_uri, timeout=2)

    def test_should_refuse_second_run(self, flow: AuthorizationFlow) -> None:
        thread, _ = start_flow(flow)
        callback(flow, error="access_denied")
        thread.join(5)

        with pytest.raises(AuthorizationFlowError, match="already started"):
            flow.run()

    def test_should_fail_when_port_unavailable(self, client_config, credential_store) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen()
            port = blocker.getsockname()[1]

            flow = AuthorizationFlow(
                client_config, credential_store, host="127.0.0.1", port=port, open_browser=False
            )
            with pytest.raises(AuthorizationFlowError, match="Could not listen"):
                flow.run()

        assert flow.state is FlowState.FAILED

    def test_should_not_fail_when_browser_unavailable(self, client_config, credential_store) -> None:
        flow = AuthorizationFlow(
            client_config, credential_store, host="127.0.0.1", port=0, timeout=5
        )

        with patch("gdrive_mcp.auth.oauth_manager.webbrowser.open", return_value=False) as mock_open:
            thread, outcome = start_flow(flow)
            callback(flow, error="access_denied")
            thread.join(5)

        mock_open.assert_called_once_with(flow.auth_url)
        assert isinstance(outcome["error"], AuthorizationDeniedError)

    def test_timeout_waits_for_exchange_in_progress(
        self, client_config, credential_store, valid_credential: Credential
    ) -> None:
        flow = AuthorizationFlow(
            client_config,
            credential_store,
            host="127.0.0.1",
            port=0,
            timeout=0.5,
            open_browser=False,
        )

        def slow_exchange(code: str, pkce) -> Credential:
            time.sleep(1.5)
            return valid_credential

        with patch.object(AuthorizationFlow, "_exchange_code", side_effect=slow_exchange):
            thread, outcome = start_flow(flow)
            state = query_of(flow.auth_url)["state"][0]
            response = callback(flow, code="abc123", state=state)
            thread.join(5)

        assert response.status_code == 200
        assert "error" not in outcome
        assert outcome["credential"] == valid_credential
        assert flow.state is FlowState.COMPLETE
        assert credential_store.load() == valid_credential


@pytest.mark.unit
def test_import_relaxes_token_scope_check() -> None:
    assert os.environ.get("OAUTHLIB_RELAX_TOKEN_SCOPE") == "1"


@pytest.mark.unit
class TestFlowOutcome:
    """Tests for the single-resolution guard shared by callback and timeout."""

    def test_only_first_claim_wins(self) -> None:
        outcome = _FlowOutcome()

        assert outcome.claim() is True
        assert outcome.claim() is False

    def test_concurrent_claims_have_one_winner(self) -> None:
        outcome = _FlowOutcome()
        results: list[bool] = []
        lock = threading.Lock()

        def claim() -> None:
            won = outcome.claim()
            with lock:
                results.append(won)

        threads = [threading.Thread(target=claim) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert results.count(True) == 1
        assert results.count(False) == 15

    def test_wait_returns_once_settled(self, valid_credential: Credential) -> None:
        outcome = _FlowOutcome()
        assert outcome.wait(0.01) is False

        outcome.claim()
        outcome.resolve(valid_credential)

        assert outcome.wait(0.01) is True
        assert outcome.credential == valid_credential
        assert outcome.error is None


@pytest.mark.unit
class TestOAuthManager:
    """Tests for OAuthManager."""

    def test_should_report_missing_status(self, oauth_manager: OAuthManager) -> None:
        status, credential = oauth_manager.get_status()

        assert status == TokenStatus.MISSING
        assert credential is None
        assert oauth_manager.has_valid_tokens() is False

    def test_should_report_stored_credential(
        self, oauth_manager: OAuthManager, valid_credential: Credential
    ) -> None:
        oauth_manager.store.save(valid_credential)

        status, credential = oauth_manager.get_status()

        assert status == TokenStatus.VALID
        assert credential == valid_credential

    def test_logout_removes_credential(
        self, oauth_manager: OAuthManager, valid_credential: Credential
    ) -> None:
        oauth_manager.store.save(valid_credential)

        oauth_manager.logout()
        oauth_manager.logout()

        assert oauth_manager.store.load() is None

    def test_create_flow_uses_manager_port(self, credential_store, client_config) -> None:
        manager = OAuthManager(store=credential_store, port=8765, flow_timeout=30)

        flow = manager.create_flow(client_config)

        assert flow.redirect_uri == "http://localhost:8765/oauth2callback"
        assert flow.timeout == 30
        assert flow.store is credential_store

    @pytest.mark.asyncio
    async def test_authenticate_requires_client_credentials(
        self, oauth_manager: OAuthManager
    ) -> None:
        with pytest.raises(ConfigurationError):
            await oauth_manager.authenticate()

    @pytest.mark.asyncio
    async def test_open_session_uses_stored_credential(
        self, oauth_manager: OAuthManager, expired_credential: Credential
    ) -> None:
        oauth_manager.store.save(expired_credential)

        with patch.object(OAuthManager, "_run_flow", new_callable=AsyncMock) as mock_flow:
            session = await oauth_manager.open_session("id", "secret")

        mock_flow.assert_not_awaited()
        assert isinstance(session, CredentialSession)
        assert session.credential == expired_credential

    @pytest.mark.asyncio
    async def test_open_session_authorizes_when_nothing_stored(
        self, oauth_manager: OAuthManager, valid_credential: Credential
    ) -> None:
        with patch.object(
            OAuthManager, "_run_flow", new_callable=AsyncMock, return_value=valid_credential
        ) as mock_flow:
            session = await oauth_manager.open_session("id", "secret")

        mock_flow.assert_awaited_once()
        assert session.credential == valid_credential

    @pytest.mark.asyncio
    async def test_open_session_authorizes_when_stored_credential_unusable(
        self,
        oauth_manager: OAuthManager,
        expired_unrefreshable_credential: Credential,
        valid_credential: Credential,
    ) -> None:
        oauth_manager.store.save(expired_unrefreshable_credential)

        with patch.object(
            OAuthManager, "_run_flow", new_callable=AsyncMock, return_value=valid_credential
        ) as mock_flow:
            session = await oauth_manager.open_session("id", "secret")

        mock_flow.assert_awaited_once()
        assert session.credential == valid_credential
