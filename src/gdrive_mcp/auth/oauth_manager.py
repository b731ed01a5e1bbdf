"""OAuth2 authorization-code flow with PKCE for Google Drive.

This module drives the interactive consent flow with google-auth-oauthlib:
it builds the authorization URL, waits for the redirect on a local HTTP
listener, exchanges the code for tokens and hands the credential to the
CredentialStore. ``OAuthManager`` ties the flow, the store and the
CredentialSession together.

Environment Variables:
    GOOGLE_CLIENT_ID: Google OAuth client ID (required)
    GOOGLE_CLIENT_SECRET: Google OAuth client secret (required)
"""

import asyncio
import logging
import os
import sys
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from google_auth_oauthlib.flow import Flow

from gdrive_mcp.auth.models import Credential, FlowState, PKCEPair, TokenStatus
from gdrive_mcp.auth.session import CredentialSession, persist_rotated_credential
from gdrive_mcp.auth.token_storage import CredentialStore
from gdrive_mcp.config import OAuthClientConfig
from gdrive_mcp.errors import (
    AuthorizationDeniedError,
    AuthorizationFlowError,
    AuthorizationTimeoutError,
    MissingAuthorizationCodeError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)

# Google Drive OAuth scopes
GOOGLE_DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/spreadsheets",
]

# OAuth configuration defaults
DEFAULT_OAUTH_HOST = "localhost"
DEFAULT_OAUTH_PORT = 3000
CALLBACK_PATH = "/oauth2callback"
DEFAULT_REDIRECT_URI = f"http://{DEFAULT_OAUTH_HOST}:{DEFAULT_OAUTH_PORT}{CALLBACK_PATH}"
DEFAULT_FLOW_TIMEOUT_SECONDS = 300

# oauthlib rejects a token response whose scopes differ from the requested
# ones; Google may reorder them or add granted scopes, so relax the check once.
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

_SUCCESS_PAGE = (
    b"<html><body><h1>Authentication Successful!</h1>"
    b"<p>You can close this window and return to the terminal.</p></body></html>"
)
_DENIED_PAGE = (
    b"<html><body><h1>Authentication Failed</h1>"
    b"<p>Please close this window and try again.</p></body></html>"
)
_MISSING_CODE_PAGE = (
    b"<html><body><h1>Authentication Failed</h1>"
    b"<p>No authorization code received.</p></body></html>"
)
_ERROR_PAGE = (
    b"<html><body><h1>Error</h1>"
    b"<p>An error occurred during authentication.</p></body></html>"
)


class _FlowOutcome:
    """One-shot result shared by the callback handler and the timeout.

    Whoever claims it first owns the outcome; the loser backs off.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claimed = False
        self._settled = threading.Event()
        self.credential: Credential | None = None
        self.error: BaseException | None = None

    def claim(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def resolve(self, credential: Credential) -> None:
        self.credential = credential
        self._settled.set()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._settled.set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._settled.wait(timeout)


class AuthorizationFlow:
    """Single interactive OAuth2 + PKCE authorization attempt.

    An instance runs at most once. ``run`` blocks until the callback arrives,
    the timeout elapses or the exchange fails, and always closes the local
    listener before returning.

    Attributes:
        state: Current FlowState.
        auth_url: Authorization URL presented to the user, once built.
        redirect_uri: Redirect URI bound by the local listener.
    """

    def __init__(
        self,
        client_config: OAuthClientConfig,
        store: CredentialStore,
        scopes: list[str] | None = None,
        host: str = DEFAULT_OAUTH_HOST,
        port: int = DEFAULT_OAUTH_PORT,
        timeout: float = DEFAULT_FLOW_TIMEOUT_SECONDS,
        open_browser: bool = True,
    ) -> None:
        self.client_config = client_config
        self.store = store
        self.scopes = scopes or GOOGLE_DRIVE_SCOPES
        self.host = host
        self.port = port
        self.timeout = timeout
        self.open_browser = open_browser
        self.state = FlowState.IDLE
        self.auth_url: str | None = None
        self._expected_state: str | None = None
        self._oauth_flow: Flow | None = None
        self.redirect_uri = f"http://{host}:{port}{CALLBACK_PATH}"

    def run(self) -> Credential:
        """Run the flow to completion (blocking).

        Returns:
            The credential produced by the token exchange.

        Raises:
            AuthorizationFlowError: If the flow was already started, timed out,
                was denied, received no code or the exchange failed.
        """
        if self.state is not FlowState.IDLE:
            raise AuthorizationFlowError(
                f"Authorization flow already started (state: {self.state.value})"
            )

        self.state = FlowState.AWAITING_USER_CONSENT
        pkce = PKCEPair.generate()
        outcome = _FlowOutcome()

        try:
            server = HTTPServer((self.host, self.port), self._make_handler(pkce, outcome))
        except OSError as e:
            self.state = FlowState.FAILED
            raise AuthorizationFlowError(
                f"Could not listen on {self.host}:{self.port} for the OAuth callback: {e}",
                original_error=e,
            ) from e

        serving: threading.Thread | None = None
        try:
            self.redirect_uri = f"http://{self.host}:{server.server_port}{CALLBACK_PATH}"
            self._oauth_flow = self._build_oauth_flow(pkce)
            self.auth_url, self._expected_state = self._oauth_flow.authorization_url(
                access_type="offline",
                prompt="consent",
                code_challenge=pkce.challenge,
                code_challenge_method="S256",
            )
            self._present(self.auth_url)

            self.state = FlowState.AWAITING_CALLBACK
            serving = threading.Thread(
                target=server.serve_forever,
                kwargs={"poll_interval": 0.1},
                name="oauth-callback",
                daemon=True,
            )
            serving.start()

            if not outcome.wait(self.timeout):
                if outcome.claim():
                    outcome.fail(
                        AuthorizationTimeoutError(
                            f"Authentication timeout: no callback within {self.timeout:g} seconds"
                        )
                    )
                else:
                    # The callback won the race and is still finishing up
                    outcome.wait()
        except BaseException:
            self.state = FlowState.FAILED
            raise
        finally:
            if serving is not None:
                server.shutdown()
                serving.join()
            server.server_close()

        if outcome.error is not None:
            self.state = FlowState.FAILED
            logger.error("Authorization failed: %s", outcome.error)
            raise outcome.error

        if outcome.credential is None:
            self.state = FlowState.FAILED
            raise AuthorizationFlowError("Authorization flow ended without a credential")

        self.state = FlowState.COMPLETE
        print("Authentication successful!", file=sys.stderr)
        return outcome.credential

    def _build_oauth_flow(self, pkce: PKCEPair) -> Flow:
        return Flow.from_client_config(
            self.client_config.to_client_config(self.redirect_uri),
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
            code_verifier=pkce.verifier,
            autogenerate_code_verifier=False,
        )

    def _present(self, auth_url: str) -> None:
        """Show the authorization URL and try to open it in a browser."""
        print("\nAuthentication Required", file=sys.stderr)
        print("Opening browser for Google OAuth...", file=sys.stderr)
        print("If the browser does not open, visit this URL:", file=sys.stderr)
        print(auth_url, file=sys.stderr)
        print("", file=sys.stderr)

        if not self.open_browser:
            return
        try:
            if not webbrowser.open(auth_url):
                logger.warning("Failed to open browser automatically")
        except webbrowser.Error as e:
            logger.warning("Failed to open browser automatically: %s", e)

    def _exchange_code(self, code: str, pkce: PKCEPair) -> Credential:
        """Exchange the authorization code and PKCE verifier for tokens."""
        token = self._oauth_flow.fetch_token(code=code, code_verifier=pkce.verifier)
        return Credential.from_token_response(dict(token))

    def _handle_callback(self, query: dict[str, list[str]], pkce: PKCEPair) -> Credential:
        """Validate the callback parameters and complete the exchange."""
        if "error" in query:
            raise AuthorizationDeniedError(query["error"][0])

        code = query.get("code", [None])[0]
        if not code:
            raise MissingAuthorizationCodeError("No authorization code received")

        if query.get("state", [None])[0] != self._expected_state:
            raise AuthorizationFlowError("OAuth state mismatch in callback")

        self.state = FlowState.EXCHANGING
        try:
            credential = self._exchange_code(code, pkce)
        except Exception as e:
            raise TokenExchangeError(f"Token exchange failed: {e}", original_error=e) from e

        if credential.refresh_token:
            self.store.save(credential)
        else:
            logger.warning(
                "Token response contained no refresh token; credential not persisted"
            )
        return credential

    def _make_handler(
        self, pkce: PKCEPair, outcome: _FlowOutcome
    ) -> type[BaseHTTPRequestHandler]:
        flow = self

        class OAuthCallbackHandler(BaseHTTPRequestHandler):
            """HTTP handler for OAuth callback."""

            def log_message(self, format: str, *args) -> None:
                """Suppress HTTP server logs."""
                pass

            def _respond(self, status: int, body: bytes) -> None:
                self.send_response(status)
                self.send_header("Content-type", "text/html")
                self.end_headers()
                self.wfile.write(body)

            def do_GET(self) -> None:
                """Handle GET request from OAuth redirect."""
                request_parsed = urlparse(self.path)

                # Only handle the callback path
                if request_parsed.path != CALLBACK_PATH:
                    self._respond(404, b"Not Found")
                    return

                if not outcome.claim():
                    self._respond(400, _ERROR_PAGE)
                    return

                try:
                    credential = flow._handle_callback(parse_qs(request_parsed.query), pkce)
                except AuthorizationDeniedError as e:
                    outcome.fail(e)
                    self._respond(400, _DENIED_PAGE)
                except MissingAuthorizationCodeError as e:
                    outcome.fail(e)
                    self._respond(400, _MISSING_CODE_PAGE)
                except Exception as e:
                    logger.exception("Error in OAuth callback")
                    outcome.fail(e)
                    self._respond(500, _ERROR_PAGE)
                else:
                    outcome.resolve(credential)
                    self._respond(200, _SUCCESS_PAGE)

        return OAuthCallbackHandler


class OAuthManager:
    """OAuth authentication manager for Google Drive.

    Handles the complete OAuth2 flow including authorization, credential
    storage and session creation with automatic refresh.

    Attributes:
        store: CredentialStore used to persist credentials.

    Example:
        ```python
        manager = OAuthManager()

        # Authenticate with Google
        credential = await manager.authenticate(client_id="...", client_secret="...")

        # Open an auto-refreshing session for API calls
        session = await manager.open_session()
        ```
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        port: int = DEFAULT_OAUTH_PORT,
        flow_timeout: float = DEFAULT_FLOW_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize OAuth manager.

        Args:
            store: Credential store instance. Creates default if not provided.
            port: Local redirect port registered with the OAuth client.
            flow_timeout: Seconds to wait for the OAuth callback.
        """
        self.store = store or CredentialStore()
        self.port = port
        self.flow_timeout = flow_timeout

    @property
    def token_path(self) -> Path:
        return self.store.token_path

    def has_valid_tokens(self) -> bool:
        """True if a stored credential is unexpired or refreshable."""
        return self.store.is_valid()

    def get_status(self) -> tuple[TokenStatus, Credential | None]:
        """Get the status of the stored credential.

        Returns:
            Tuple of (TokenStatus, Credential or None).
        """
        status = self.store.get_status()
        credential = (
            self.store.load() if status not in (TokenStatus.MISSING, TokenStatus.INVALID) else None
        )
        return (status, credential)

    def create_flow(self, client_config: OAuthClientConfig) -> AuthorizationFlow:
        return AuthorizationFlow(
            client_config, self.store, port=self.port, timeout=self.flow_timeout
        )

    async def authenticate(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> Credential:
        """Perform the complete OAuth2 authentication flow.

        Args:
            client_id: Google OAuth client ID. Read from GOOGLE_CLIENT_ID if omitted.
            client_secret: Google OAuth client secret. Read from
                GOOGLE_CLIENT_SECRET if omitted.

        Returns:
            Credential containing access and refresh tokens.

        Raises:
            ConfigurationError: If client ID/secret are not available.
            AuthorizationFlowError: If the flow fails.
        """
        client_config = OAuthClientConfig.from_env(client_id, client_secret)
        return await self._run_flow(client_config)

    async def _run_flow(self, client_config: OAuthClientConfig) -> Credential:
        flow = self.create_flow(client_config)
        # Run OAuth flow in executor (it's blocking)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flow.run)

    async def open_session(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> CredentialSession:
        """Open a CredentialSession, authorizing first if necessary.

        Uses the stored credential when it is unexpired or refreshable,
        otherwise runs the authorization flow and activates its result.
        Rotated tokens are persisted to the store automatically.

        Raises:
            ConfigurationError: If client ID/secret are not available.
            AuthorizationFlowError: If authorization is needed and fails.
            StoreIOError: If the stored credential cannot be read.
        """
        client_config = OAuthClientConfig.from_env(client_id, client_secret)

        credential = self.store.load()
        if credential is None or (credential.is_expired() and not credential.can_refresh):
            logger.info("No usable stored credential, starting authorization flow")
            credential = await self._run_flow(client_config)

        return CredentialSession(
            credential,
            client_config,
            on_refresh=persist_rotated_credential(self.store),
        )

    def logout(self) -> None:
        """Delete the stored credential."""
        self.store.delete()
