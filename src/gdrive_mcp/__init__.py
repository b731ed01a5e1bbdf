"""Google Drive MCP Server.

Connect MCP clients to Google Drive, Docs and Sheets: files, documents,
spreadsheets, comments, suggestions and sharing permissions.
"""

from gdrive_mcp.__version__ import __version__

__all__ = ["__version__"]
