"""MCP server implementation for Google Drive.

Provides 28 tools across Drive, Docs and Sheets:

Files (6):
- Search and list folder contents
- Read, create, delete and move files

Docs (2) and Sheets (3):
- Read and update document text
- Read spreadsheet metadata, read and update cell ranges

Comments (8):
- Create, list, get, update and delete comments
- Reply to, resolve and reopen comment threads

Suggestions (4):
- Create, list, accept and reject suggestions

Sharing (5):
- Share with users, groups, domains or anyone
- Create share links, list, update and remove permissions

Transport: Stdio
Authentication: OAuth 2.0 with PKCE and automatic token refresh
"""

from gdrive_mcp.server.google_drive_server import GoogleDriveServer, main


def create_server() -> GoogleDriveServer:
    """Create and configure a Google Drive MCP server.

    Returns:
        GoogleDriveServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return GoogleDriveServer()


__all__ = ["create_server", "GoogleDriveServer", "main"]
