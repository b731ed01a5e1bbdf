"""Google Drive MCP server.

This MCP server exposes Google Drive, Docs and Sheets operations (files,
documents, spreadsheets, comments, suggestions and sharing) as tools. Access
tokens come from a CredentialSession, which refreshes and persists them
transparently. Every API call runs through the retry policy in
``gdrive_mcp.retry`` and failures are reported as classified errors.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from gdrive_mcp.auth import CredentialSession, OAuthManager
from gdrive_mcp.errors import (
    AuthenticationError,
    GoogleDriveError,
    InvalidRequestError,
    classify_error,
)
from gdrive_mcp.retry import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES, execute
from gdrive_mcp.server import schemas
from gdrive_mcp.server.formatting import (
    build_search_query,
    extract_doc_text,
    extract_suggestions,
    format_comment,
    format_file_metadata,
    format_permission,
    format_reply,
    get_export_mime_type,
    is_google_workspace_file,
)

logger = logging.getLogger(__name__)

# Google API base URLs
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
DOCS_API_BASE = "https://docs.googleapis.com/v1"
SHEETS_API_BASE = "https://sheets.googleapis.com/v4"

FILE_FIELDS = "id,name,mimeType,createdTime,modifiedTime,size,webViewLink,owners,parents"
COMMENT_FIELDS = (
    "id,content,author,createdTime,modifiedTime,resolved,anchor,quotedFileContent,replies"
)
REPLY_FIELDS = "id,content,author,createdTime,modifiedTime"
PERMISSION_FIELDS = "id,type,role,emailAddress,displayName"

MAX_CONTENT_CHARS = 100_000
DEFAULT_SHEET_RANGE = "A1:Z1000"

ToolHandler = Callable[[Any], Awaitable[dict[str, Any]]]


class GoogleDriveServer:
    """MCP server for Google Drive, Docs and Sheets.

    Attributes:
        server: MCP Server instance.
        manager: OAuthManager used to open the credential session.
        session: Active CredentialSession, set by ``initialize``.
    """

    def __init__(
        self,
        manager: OAuthManager | None = None,
        session: CredentialSession | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    ) -> None:
        """Initialize the Google Drive MCP server."""
        self.server = Server("gdrive-mcp")
        self.manager = manager or OAuthManager()
        self.session = session
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._http_client: httpx.AsyncClient | None = None
        self._handlers: dict[str, ToolHandler] = {
            # File operations
            "gdrive_search": self._search_files,
            "gdrive_list_folder": self._list_folder,
            "gdrive_read_file": self._read_file,
            "gdrive_create_file": self._create_file,
            "gdrive_delete_file": self._delete_file,
            "gdrive_move_file": self._move_file,
            # Google Docs operations
            "gdocs_read": self._read_document,
            "gdocs_update": self._update_document,
            # Google Sheets operations
            "gsheets_get_metadata": self._get_sheet_metadata,
            "gsheets_read": self._read_sheet,
            "gsheets_update": self._update_sheet,
            # Comment operations
            "gdrive_create_comment": self._create_comment,
            "gdrive_list_comments": self._list_comments,
            "gdrive_get_comment": self._get_comment,
            "gdrive_update_comment": self._update_comment,
            "gdrive_delete_comment": self._delete_comment,
            "gdrive_reply_to_comment": self._reply_to_comment,
            "gdrive_resolve_comment": self._resolve_comment,
            "gdrive_reopen_comment": self._reopen_comment,
            # Suggestion operations
            "gdocs_create_suggestion": self._create_suggestion,
            "gdocs_list_suggestions": self._list_suggestions,
            "gdocs_accept_suggestion": self._accept_suggestion,
            "gdocs_reject_suggestion": self._reject_suggestion,
            # Sharing operations
            "gdrive_share_file": self._share_file,
            "gdrive_create_share_link": self._create_share_link,
            "gdrive_list_permissions": self._list_permissions,
            "gdrive_update_permission": self._update_permission,
            "gdrive_remove_permission": self._remove_permission,
        }
        self._setup_handlers()

    async def initialize(self) -> None:
        """Open the credential session, authorizing first if needed."""
        if self.session is None:
            self.session = await self.manager.open_session()

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and flush pending credential writes."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        if self.session is not None:
            await self.session.aclose()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.call_tool(name, arguments)

    def list_tools(self) -> list[Tool]:
        return [
            Tool(name=name, description=description, inputSchema=schema.model_json_schema())
            for name, (description, schema) in schemas.TOOL_SCHEMAS.items()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Run a tool and render its result or error as JSON text."""
        try:
            result = await self._dispatch_tool(name, arguments)
        except ValidationError as e:
            logger.info("Invalid arguments for tool %s: %s", name, e)
            result = {
                "error": {
                    "kind": "ValidationError",
                    "message": f"Invalid arguments for {name}",
                    "details": e.errors(include_url=False, include_context=False),
                }
            }
        except GoogleDriveError as e:
            logger.warning("Tool %s failed: %s", name, e)
            result = {"error": e.to_dict()}
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            result = {"error": classify_error(e).to_dict()}

        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    async def _dispatch_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Validate arguments and dispatch to the tool handler.

        Raises:
            InvalidRequestError: If the tool name is not recognized.
            pydantic.ValidationError: If the arguments do not match the schema.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise InvalidRequestError(f"Unknown tool: {name}")

        params = schemas.validate_arguments(name, arguments)
        return await handler(params)

    # =========================================================================
    # Request execution
    # =========================================================================

    async def _get_access_token(self) -> str:
        if self.session is None:
            raise AuthenticationError(
                "Not authenticated. Run 'gdrive-mcp setup' first.", status_code=401
            )
        return await self.session.get_access_token()

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        """Make an authenticated request with retries.

        Returns:
            Raw httpx.Response object.

        Raises:
            GoogleDriveError: Classified failure once retries are exhausted.
        """

        async def call() -> httpx.Response:
            access_token = await self._get_access_token()
            client = await self._get_http_client()

            request_headers = {
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            }
            if headers:
                request_headers.update(headers)

            response = await client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                content=content,
                headers=request_headers,
                timeout=timeout,
            )
            response.raise_for_status()
            return response

        try:
            return await execute(call, self.max_retries, self.base_delay_ms)
        except Exception as e:
            raise classify_error(e) from e

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and decode the JSON response."""
        response = await self._request(method, url, params=params, json_data=json_data)
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    # =========================================================================
    # File operations
    # =========================================================================

    async def _search_files(self, args: schemas.SearchFilesArgs) -> dict[str, Any]:
        params = {
            "q": build_search_query(args.query, args.mime_type, args.folder_id),
            "pageSize": args.max_results,
            "fields": f"files({FILE_FIELDS})",
            "orderBy": "modifiedTime desc",
        }
        response = await self._make_request("GET", f"{DRIVE_API_BASE}/files", params=params)

        files = [format_file_metadata(f) for f in response.get("files", [])]
        return {"count": len(files), "files": files}

    async def _list_folder(self, args: schemas.ListFolderArgs) -> dict[str, Any]:
        params: dict[str, Any] = {
            "q": build_search_query(folder_id=args.folder_id),
            "pageSize": args.page_size,
            "fields": f"nextPageToken,files({FILE_FIELDS})",
            "orderBy": "folder,name",
        }
        if args.page_token:
            params["pageToken"] = args.page_token

        response = await self._make_request("GET", f"{DRIVE_API_BASE}/files", params=params)

        return {
            "files": [format_file_metadata(f) for f in response.get("files", [])],
            "nextPageToken": response.get("nextPageToken"),
        }

    async def _read_file(self, args: schemas.FileIdArgs) -> dict[str, Any]:
        url = f"{DRIVE_API_BASE}/files/{args.file_id}"
        metadata = await self._make_request("GET", url, params={"fields": FILE_FIELDS})
        mime_type = metadata.get("mimeType", "")

        content = ""
        if is_google_workspace_file(mime_type):
            export_mime_type = get_export_mime_type(mime_type)
            if export_mime_type:
                response = await self._request(
                    "GET", f"{url}/export", params={"mimeType": export_mime_type}
                )
                content = response.text
        else:
            response = await self._request("GET", url, params={"alt": "media"})
            if mime_type.startswith("text/") or mime_type in ("application/json", ""):
                content = response.text
            else:
                content = f"[Binary file: {metadata.get('size', 'unknown')} bytes]"

        return {
            "metadata": format_file_metadata(metadata),
            "content": content[:MAX_CONTENT_CHARS],
        }

    async def _create_file(self, args: schemas.CreateFileArgs) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": args.name, "mimeType": args.mime_type}
        if args.parent_id:
            metadata["parents"] = [args.parent_id]

        fields = "id,name,mimeType,createdTime,webViewLink"

        if args.content and not is_google_workspace_file(args.mime_type):
            # Use multipart upload
            boundary = "gdrive_mcp_boundary"
            body = "\r\n".join(
                [
                    f"--{boundary}",
                    "Content-Type: application/json; charset=UTF-8",
                    "",
                    json.dumps(metadata),
                    f"--{boundary}",
                    f"Content-Type: {args.mime_type}",
                    "",
                    args.content,
                    f"--{boundary}--",
                ]
            )
            response = await self._request(
                "POST",
                f"{DRIVE_UPLOAD_BASE}/files",
                params={"uploadType": "multipart", "fields": fields},
                content=body.encode("utf-8"),
                headers={"Content-Type": f"multipart/related; boundary={boundary}"},
                timeout=60.0,
            )
            result = response.json()
        else:
            result = await self._make_request(
                "POST", f"{DRIVE_API_BASE}/files", params={"fields": fields}, json_data=metadata
            )

        return format_file_metadata(result)

    async def _delete_file(self, args: schemas.FileIdArgs) -> dict[str, Any]:
        await self._request("DELETE", f"{DRIVE_API_BASE}/files/{args.file_id}")
        return {"success": True, "fileId": args.file_id}

    async def _move_file(self, args: schemas.MoveFileArgs) -> dict[str, Any]:
        url = f"{DRIVE_API_BASE}/files/{args.file_id}"

        # First get current parents
        file_info = await self._make_request("GET", url, params={"fields": "parents"})
        previous_parents = ",".join(file_info.get("parents", []))

        response = await self._make_request(
            "PATCH",
            url,
            params={
                "addParents": args.new_parent_id,
                "removeParents": previous_parents,
                "fields": "id,name,mimeType,parents,webViewLink",
            },
            json_data={},
        )
        return format_file_metadata(response)

    # =========================================================================
    # Google Docs operations
    # =========================================================================

    async def _read_document(self, args: schemas.DocumentIdArgs) -> dict[str, Any]:
        doc = await self._make_request("GET", f"{DOCS_API_BASE}/documents/{args.document_id}")

        return {
            "documentId": doc.get("documentId"),
            "title": doc.get("title"),
            "content": extract_doc_text(doc.get("body", {})),
            "revisionId": doc.get("revisionId"),
        }

    async def _batch_update_document(
        self, document_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await self._make_request(
            "POST",
            f"{DOCS_API_BASE}/documents/{document_id}:batchUpdate",
            json_data={"requests": requests},
        )

    async def _update_document(self, args: schemas.UpdateDocumentArgs) -> dict[str, Any]:
        requests: list[dict[str, Any]] = []

        if args.start_index is not None and args.end_index is not None:
            # Replace text at specific range
            requests.append(
                {
                    "deleteContentRange": {
                        "range": {"startIndex": args.start_index, "endIndex": args.end_index}
                    }
                }
            )
            requests.append(
                {"insertText": {"location": {"index": args.start_index}, "text": args.text}}
            )
        else:
            requests.append({"insertText": {"location": {"index": 1}, "text": args.text}})

        response = await self._batch_update_document(args.document_id, requests)

        return {
            "success": True,
            "documentId": args.document_id,
            "replies": response.get("replies", []),
        }

    # =========================================================================
    # Google Sheets operations
    # =========================================================================

    async def _get_sheet_metadata(self, args: schemas.SpreadsheetIdArgs) -> dict[str, Any]:
        spreadsheet = await self._make_request(
            "GET", f"{SHEETS_API_BASE}/spreadsheets/{args.spreadsheet_id}"
        )
        properties = spreadsheet.get("properties", {})

        return {
            "spreadsheetId": spreadsheet.get("spreadsheetId"),
            "title": properties.get("title"),
            "locale": properties.get("locale"),
            "timeZone": properties.get("timeZone"),
            "sheets": [
                {
                    "sheetId": sheet.get("properties", {}).get("sheetId"),
                    "title": sheet.get("properties", {}).get("title"),
                    "index": sheet.get("properties", {}).get("index"),
                    "gridProperties": sheet.get("properties", {}).get("gridProperties"),
                }
                for sheet in spreadsheet.get("sheets", [])
            ],
        }

    def _values_url(self, spreadsheet_id: str, range_: str) -> str:
        return (
            f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/values/{quote(range_, safe='')}"
        )

    async def _read_sheet(self, args: schemas.ReadSheetArgs) -> dict[str, Any]:
        url = self._values_url(args.spreadsheet_id, args.range or DEFAULT_SHEET_RANGE)
        response = await self._make_request("GET", url)

        return {"range": response.get("range"), "values": response.get("values", [])}

    async def _update_sheet(self, args: schemas.UpdateSheetArgs) -> dict[str, Any]:
        response = await self._make_request(
            "PUT",
            self._values_url(args.spreadsheet_id, args.range),
            params={"valueInputOption": "USER_ENTERED"},
            json_data={"range": args.range, "values": args.values},
        )

        return {
            "success": True,
            "spreadsheetId": args.spreadsheet_id,
            "updatedRange": response.get("updatedRange"),
            "updatedRows": response.get("updatedRows"),
            "updatedColumns": response.get("updatedColumns"),
            "updatedCells": response.get("updatedCells"),
        }

    # =========================================================================
    # Comment operations
    # =========================================================================

    def _comments_url(self, file_id: str, comment_id: str | None = None) -> str:
        url = f"{DRIVE_API_BASE}/files/{file_id}/comments"
        return f"{url}/{comment_id}" if comment_id else url

    async def _create_comment(self, args: schemas.CreateCommentArgs) -> dict[str, Any]:
        comment: dict[str, Any] = {"content": args.content}

        # Anchor to a text range in Google Docs
        if args.start_index is not None:
            length = args.end_index - args.start_index if args.end_index else 0
            comment["anchor"] = json.dumps(
                {"r": "head", "a": [{"txt": {"o": args.start_index, "l": length, "ts": 0}}]}
            )

        # Quote the referenced cell in Google Sheets
        if args.cell_reference:
            comment["quotedFileContent"] = {
                "mimeType": "application/vnd.google-apps.spreadsheet",
                "value": args.cell_reference,
            }

        response = await self._make_request(
            "POST",
            self._comments_url(args.file_id),
            params={"fields": COMMENT_FIELDS},
            json_data=comment,
        )
        return {"success": True, "comment": format_comment(response)}

    async def _list_comments(self, args: schemas.ListCommentsArgs) -> dict[str, Any]:
        response = await self._make_request(
            "GET",
            self._comments_url(args.file_id),
            params={
                "includeDeleted": str(args.include_deleted).lower(),
                "fields": f"comments({COMMENT_FIELDS})",
            },
        )

        comments = response.get("comments", [])
        if args.resolved_only is not None:
            comments = [c for c in comments if bool(c.get("resolved")) == args.resolved_only]

        return {"count": len(comments), "comments": [format_comment(c) for c in comments]}

    async def _get_comment(self, args: schemas.CommentIdArgs) -> dict[str, Any]:
        response = await self._make_request(
            "GET",
            self._comments_url(args.file_id, args.comment_id),
            params={"fields": COMMENT_FIELDS},
        )
        return format_comment(response)

    async def _update_comment(self, args: schemas.CommentContentArgs) -> dict[str, Any]:
        response = await self._make_request(
            "PATCH",
            self._comments_url(args.file_id, args.comment_id),
            params={"fields": "id,content,author,createdTime,modifiedTime,resolved"},
            json_data={"content": args.content},
        )
        return {"success": True, "comment": format_comment(response)}

    async def _delete_comment(self, args: schemas.CommentIdArgs) -> dict[str, Any]:
        await self._request("DELETE", self._comments_url(args.file_id, args.comment_id))
        return {"success": True, "commentId": args.comment_id}

    async def _reply_to_comment(self, args: schemas.CommentContentArgs) -> dict[str, Any]:
        response = await self._make_request(
            "POST",
            f"{self._comments_url(args.file_id, args.comment_id)}/replies",
            params={"fields": REPLY_FIELDS},
            json_data={"content": args.content},
        )
        return {"success": True, "reply": format_reply(response)}

    async def _set_comment_resolved(
        self, args: schemas.CommentIdArgs, resolved: bool
    ) -> dict[str, Any]:
        # Drive only accepts resolution changes through a reply carrying an action
        response = await self._make_request(
            "POST",
            f"{self._comments_url(args.file_id, args.comment_id)}/replies",
            params={"fields": REPLY_FIELDS + ",action"},
            json_data={"action": "resolve" if resolved else "reopen"},
        )
        return {
            "success": True,
            "commentId": args.comment_id,
            "resolved": resolved,
            "replyId": response.get("id"),
        }

    async def _resolve_comment(self, args: schemas.CommentIdArgs) -> dict[str, Any]:
        return await self._set_comment_resolved(args, True)

    async def _reopen_comment(self, args: schemas.CommentIdArgs) -> dict[str, Any]:
        return await self._set_comment_resolved(args, False)

    # =========================================================================
    # Suggestion operations
    # =========================================================================

    async def _create_suggestion(self, args: schemas.CreateSuggestionArgs) -> dict[str, Any]:
        if args.type == "insert":
            request = {
                "insertText": {"location": {"index": args.start_index}, "text": args.content}
            }
        else:
            request = {
                "deleteContentRange": {
                    "range": {
                        "startIndex": args.start_index,
                        "endIndex": args.end_index or args.start_index + 1,
                    }
                }
            }

        response = await self._batch_update_document(args.file_id, [request])

        return {
            "success": True,
            "note": (
                "Suggestion created. Note: Google Docs API has limited support for "
                "suggestions. Consider using comments for collaboration instead."
            ),
            "documentId": args.file_id,
            "type": args.type,
            "replies": response.get("replies", []),
        }

    async def _list_suggestions(self, args: schemas.FileIdArgs) -> dict[str, Any]:
        doc = await self._make_request(
            "GET",
            f"{DOCS_API_BASE}/documents/{args.file_id}",
            params={"suggestionsViewMode": "SUGGESTIONS_INLINE"},
        )
        suggestions = extract_suggestions(doc.get("body", {}))

        return {
            "count": len(suggestions),
            "suggestions": suggestions,
            "note": (
                "Google Docs API has limited suggestion support. "
                "Suggestions are best managed through the Docs UI."
            ),
        }

    async def _resolve_suggestion(
        self, args: schemas.SuggestionIdArgs, action: str
    ) -> dict[str, Any]:
        await self._batch_update_document(
            args.file_id, [{action: {"suggestionId": args.suggestion_id}}]
        )
        return {
            "success": True,
            "suggestionId": args.suggestion_id,
            "documentId": args.file_id,
        }

    async def _accept_suggestion(self, args: schemas.SuggestionIdArgs) -> dict[str, Any]:
        return await self._resolve_suggestion(args, "acceptSuggestion")

    async def _reject_suggestion(self, args: schemas.SuggestionIdArgs) -> dict[str, Any]:
        return await self._resolve_suggestion(args, "rejectSuggestion")

    # =========================================================================
    # Sharing operations
    # =========================================================================

    def _permissions_url(self, file_id: str, permission_id: str | None = None) -> str:
        url = f"{DRIVE_API_BASE}/files/{file_id}/permissions"
        return f"{url}/{permission_id}" if permission_id else url

    async def _share_file(self, args: schemas.ShareFileArgs) -> dict[str, Any]:
        if args.type in ("user", "group") and not args.email_address:
            raise InvalidRequestError(
                f"Invalid request: email_address is required for '{args.type}' permissions",
                status_code=400,
            )

        permission: dict[str, Any] = {"type": args.type, "role": args.role}
        if args.email_address:
            permission["emailAddress"] = str(args.email_address)

        params: dict[str, Any] = {
            "sendNotificationEmail": str(args.send_notification_email).lower(),
            "fields": PERMISSION_FIELDS,
        }
        if args.role == "owner":
            params["transferOwnership"] = "true"
        if args.email_message:
            params["emailMessage"] = args.email_message

        response = await self._make_request(
            "POST", self._permissions_url(args.file_id), params=params, json_data=permission
        )
        return {"success": True, "permission": format_permission(response)}

    async def _create_share_link(self, args: schemas.CreateShareLinkArgs) -> dict[str, Any]:
        await self._make_request(
            "POST",
            self._permissions_url(args.file_id),
            json_data={"type": "anyone", "role": args.role},
        )

        # Get file to retrieve webViewLink
        file_info = await self._make_request(
            "GET",
            f"{DRIVE_API_BASE}/files/{args.file_id}",
            params={"fields": "id,name,webViewLink,webContentLink"},
        )

        return {
            "success": True,
            "fileId": args.file_id,
            "fileName": file_info.get("name"),
            "webViewLink": file_info.get("webViewLink"),
            "webContentLink": file_info.get("webContentLink"),
            "role": args.role,
        }

    async def _list_permissions(self, args: schemas.FileIdArgs) -> dict[str, Any]:
        response = await self._make_request(
            "GET",
            self._permissions_url(args.file_id),
            params={
                "fields": "permissions(id,type,role,emailAddress,displayName,domain,"
                "expirationTime,allowFileDiscovery)"
            },
        )

        permissions = [format_permission(p) for p in response.get("permissions", [])]
        return {"count": len(permissions), "permissions": permissions}

    async def _update_permission(self, args: schemas.UpdatePermissionArgs) -> dict[str, Any]:
        params: dict[str, Any] = {"fields": PERMISSION_FIELDS}
        if args.role == "owner":
            params["transferOwnership"] = "true"

        response = await self._make_request(
            "PATCH",
            self._permissions_url(args.file_id, args.permission_id),
            params=params,
            json_data={"role": args.role},
        )
        return {"success": True, "permission": format_permission(response)}

    async def _remove_permission(self, args: schemas.PermissionIdArgs) -> dict[str, Any]:
        await self._request("DELETE", self._permissions_url(args.file_id, args.permission_id))
        return {"success": True, "fileId": args.file_id, "permissionId": args.permission_id}

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            await self.initialize()
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


def main() -> None:
    """Entry point for the Google Drive MCP server."""
    server = GoogleDriveServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
