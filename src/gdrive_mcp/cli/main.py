"""Command-line interface for gdrive-mcp."""

import asyncio
import logging
import sys
from datetime import datetime, timezone

import click

from gdrive_mcp.__version__ import __version__
from gdrive_mcp.config import CLIENT_ID_ENV, CLIENT_SECRET_ENV
from gdrive_mcp.errors import StoreIOError


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Google Drive MCP Server - Connect MCP clients to Google Drive APIs.

    This tool provides 28 tools across:
    - Drive (search, read, create, move, delete)
    - Docs and Sheets (read, update)
    - Comments and suggestions
    - Sharing permissions
    """
    pass


@main.command()
@click.option("--client-id", envvar=CLIENT_ID_ENV, help="Google OAuth client ID")
@click.option("--client-secret", envvar=CLIENT_SECRET_ENV, help="Google OAuth client secret")
@click.option(
    "--port",
    default=3000,
    show_default=True,
    type=click.IntRange(1, 65535),
    help="Local port of the registered OAuth redirect URI",
)
def setup(client_id: str | None, client_secret: str | None, port: int) -> None:
    """Set up Google Drive OAuth authentication.

    This will:
    1. Open browser for OAuth2 consent flow (with PKCE)
    2. Store the refresh token securely in the user data directory
    3. Report where the credential was saved

    Requires:
    - GOOGLE_CLIENT_ID environment variable or --client-id option
    - GOOGLE_CLIENT_SECRET environment variable or --client-secret option
    """
    from gdrive_mcp.auth import OAuthManager

    manager = OAuthManager(port=port)

    # Check if already authenticated
    try:
        authenticated = manager.has_valid_tokens()
    except StoreIOError:
        # A corrupted record is overwritten by the new flow
        authenticated = False

    if authenticated:
        click.echo("✓ Already authenticated!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")

        if not click.confirm("Re-authenticate?"):
            return

    # Validate credentials
    if not client_id or not client_secret:
        click.echo("❌ Error: OAuth client credentials required")
        click.echo("")
        click.echo("Set environment variables:")
        click.echo(f"  export {CLIENT_ID_ENV}='your-client-id'")
        click.echo(f"  export {CLIENT_SECRET_ENV}='your-client-secret'")
        click.echo("")
        click.echo("Or pass as options:")
        click.echo("  gdrive-mcp setup --client-id=... --client-secret=...")
        sys.exit(1)

    # Run authentication
    click.echo("Starting OAuth authentication flow...")
    click.echo("Browser will open for Google consent...")
    click.echo("")

    try:
        asyncio.run(manager.authenticate(client_id=client_id, client_secret=client_secret))
        click.echo("✓ Authentication successful!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")
        click.echo("Run 'gdrive-mcp doctor' to verify setup.")
    except Exception as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)


@main.command()
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level for server diagnostics (written to stderr)",
)
def mcp(log_level: str) -> None:
    """Start the MCP server over stdio.

    Starts the stdio MCP server that provides 28 tools for Google Drive,
    Docs and Sheets. If no usable credential is stored, the OAuth flow
    runs first.

    This command is typically invoked by an MCP client via the MCP protocol.
    """
    from gdrive_mcp.auth import OAuthManager, TokenStatus
    from gdrive_mcp.server import main as server_main

    # stdout carries the MCP protocol
    logging.basicConfig(
        level=log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    manager = OAuthManager()
    status, _ = manager.get_status()

    if status == TokenStatus.INVALID:
        click.echo("❌ Token file corrupted. Run 'gdrive-mcp setup' to re-authenticate.", err=True)
        sys.exit(1)

    # Start the MCP server (runs indefinitely)
    try:
        click.echo("Starting Google Drive MCP server...", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
def logout() -> None:
    """Delete the stored credential."""
    from gdrive_mcp.auth import OAuthManager

    manager = OAuthManager()
    try:
        manager.logout()
    except StoreIOError as e:
        click.echo(f"❌ Failed to remove credential: {e}")
        sys.exit(1)

    click.echo(f"✓ Logged out. Removed {manager.token_path} (if it existed).")


@main.command()
def doctor() -> None:
    """Check installation and authentication status.

    Verifies:
    1. Python dependencies installed
    2. OAuth client credentials configured
    3. Token validity
    """
    import os

    from gdrive_mcp.auth import OAuthManager, TokenStatus

    click.echo("Google Drive MCP Status:")
    click.echo("")

    # Check dependencies
    click.echo("Dependencies:")
    try:
        import google.auth  # noqa: F401
        import google_auth_oauthlib  # noqa: F401
        import mcp  # noqa: F401

        click.echo("  ✓ google-auth installed")
        click.echo("  ✓ google-auth-oauthlib installed")
        click.echo("  ✓ mcp installed")
    except ImportError as e:
        click.echo(f"  ❌ Missing dependency: {e}")
        sys.exit(1)

    click.echo("")

    # Check client configuration
    click.echo("Configuration:")
    for name in (CLIENT_ID_ENV, CLIENT_SECRET_ENV):
        if os.environ.get(name):
            click.echo(f"  ✓ {name} set")
        else:
            click.echo(f"  ⚠️  {name} not set")

    click.echo("")

    # Check authentication
    manager = OAuthManager()
    status, stored = manager.get_status()

    click.echo("Authentication:")
    click.echo(f"  Token file: {manager.token_path}")

    if status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'gdrive-mcp setup' to authenticate.")
        sys.exit(1)
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Token file corrupted")
        click.echo("")
        click.echo("Run 'gdrive-mcp setup' to re-authenticate.")
        sys.exit(1)
    elif status == TokenStatus.EXPIRED:
        if stored and stored.can_refresh:
            click.echo("  ⚠️  Token expired (can be refreshed)")
            click.echo("")
            click.echo("Token will refresh automatically on use.")
        else:
            click.echo("  ❌ Token expired and no refresh token stored")
            click.echo("")
            click.echo("Run 'gdrive-mcp setup' to re-authenticate.")
            sys.exit(1)
    elif status == TokenStatus.VALID:
        click.echo("  ✓ Authenticated")
        if stored:
            expires = datetime.fromtimestamp(stored.expiry_date / 1000, tz=timezone.utc)
            click.echo(f"  Token expires: {expires.strftime('%Y-%m-%d %H:%M:%S UTC')}")
            click.echo(f"  Scopes: {len(stored.scope.split())} granted")

    click.echo("")
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
