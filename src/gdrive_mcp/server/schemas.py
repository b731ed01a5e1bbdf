"""Argument schemas for the MCP tools.

Each tool's arguments are validated against one of these models before any
API call is made; the models' JSON schemas are published as the tools'
``inputSchema``.
"""

from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, model_validator

PermissionType = Literal["user", "group", "domain", "anyone"]
PermissionRole = Literal["reader", "commenter", "writer", "owner"]


class ToolArguments(BaseModel):
    """Base class for tool argument models."""


# =============================================================================
# File operations
# =============================================================================


class SearchFilesArgs(ToolArguments):
    query: str | None = Field(None, description="Search query for file name")
    mime_type: str | None = Field(
        None, description="Filter by MIME type (e.g., application/vnd.google-apps.document)"
    )
    folder_id: str | None = Field(None, description="Search within specific folder ID")
    max_results: int = Field(100, ge=1, le=1000, description="Maximum number of results")


class ListFolderArgs(ToolArguments):
    folder_id: str = Field(description="ID of the folder to list")
    page_size: int = Field(100, ge=1, le=1000, description="Number of items per page")
    page_token: str | None = Field(None, description="Token for next page of results")


class FileIdArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")


class CreateFileArgs(ToolArguments):
    name: str = Field(description="Name of the file")
    mime_type: str = Field(description="MIME type of the file")
    content: str | None = Field(
        None, description="Content of the file (optional for Google Workspace files)"
    )
    parent_id: str | None = Field(None, description="Parent folder ID")


class MoveFileArgs(ToolArguments):
    file_id: str = Field(description="ID of the file to move")
    new_parent_id: str = Field(description="ID of the destination folder")


# =============================================================================
# Docs and Sheets
# =============================================================================


class DocumentIdArgs(ToolArguments):
    document_id: str = Field(description="ID of the Google Docs document")


class UpdateDocumentArgs(ToolArguments):
    document_id: str = Field(description="ID of the Google Docs document")
    text: str = Field(description="Text to insert or replace")
    start_index: int | None = Field(None, ge=1, description="Start position for replacement")
    end_index: int | None = Field(None, ge=1, description="End position for replacement")


class SpreadsheetIdArgs(ToolArguments):
    spreadsheet_id: str = Field(description="ID of the spreadsheet")


class ReadSheetArgs(ToolArguments):
    spreadsheet_id: str = Field(description="ID of the spreadsheet")
    range: str | None = Field(None, description="A1 notation range (e.g., Sheet1!A1:D10)")


class UpdateSheetArgs(ToolArguments):
    spreadsheet_id: str = Field(description="ID of the spreadsheet")
    range: str = Field(description="A1 notation range (e.g., Sheet1!A1:D10)")
    values: list[list[Any]] = Field(description="Array of arrays containing cell values")


# =============================================================================
# Comments
# =============================================================================


class CreateCommentArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    content: str = Field(description="Comment text")
    start_index: int | None = Field(None, ge=0, description="Start position in Docs")
    end_index: int | None = Field(None, ge=0, description="End position in Docs")
    cell_reference: str | None = Field(
        None, description="Cell reference in Sheets (e.g., A1)"
    )

    @model_validator(mode="after")
    def check_range(self) -> "CreateCommentArgs":
        if (
            self.start_index is not None
            and self.end_index is not None
            and self.end_index < self.start_index
        ):
            raise ValueError("end_index must not be less than start_index")
        return self


class ListCommentsArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    include_deleted: bool = Field(False, description="Include deleted comments")
    resolved_only: bool | None = Field(None, description="Filter by resolved status")


class CommentIdArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    comment_id: str = Field(description="ID of the comment")


class CommentContentArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    comment_id: str = Field(description="ID of the comment")
    content: str = Field(description="Comment or reply text")


# =============================================================================
# Suggestions
# =============================================================================


class CreateSuggestionArgs(ToolArguments):
    file_id: str = Field(description="ID of the document")
    type: Literal["insert", "delete"] = Field(description="Type of suggestion")
    content: str = Field(description="Content to insert or delete")
    start_index: int = Field(ge=1, description="Start position")
    end_index: int | None = Field(None, ge=1, description="End position (for delete)")


class SuggestionIdArgs(ToolArguments):
    file_id: str = Field(description="ID of the document")
    suggestion_id: str = Field(description="ID of the suggestion")


# =============================================================================
# Sharing
# =============================================================================


class ShareFileArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    email_address: EmailStr | None = Field(
        None, description="Email address (for user/group type)"
    )
    type: PermissionType = Field(description="Permission type")
    role: PermissionRole = Field(description="Access role")
    send_notification_email: bool = Field(True, description="Send email notification")
    email_message: str | None = Field(None, description="Custom message for notification")


class CreateShareLinkArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    role: Literal["reader", "commenter", "writer"] = Field("reader", description="Access role")


class UpdatePermissionArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    permission_id: str = Field(description="ID of the permission")
    role: PermissionRole = Field(description="New access role")


class PermissionIdArgs(ToolArguments):
    file_id: str = Field(description="ID of the file")
    permission_id: str = Field(description="ID of the permission to remove")


# Tool name -> (description, argument schema)
TOOL_SCHEMAS: dict[str, tuple[str, type[ToolArguments]]] = {
    # File operations
    "gdrive_search": (
        "Search for files in Google Drive with optional filters for name, mimeType, and folder",
        SearchFilesArgs,
    ),
    "gdrive_list_folder": (
        "List contents of a specific folder with pagination support",
        ListFolderArgs,
    ),
    "gdrive_read_file": (
        "Read file metadata and content. Supports Google Docs, Sheets, and regular files",
        FileIdArgs,
    ),
    "gdrive_create_file": ("Create a new file in Google Drive", CreateFileArgs),
    "gdrive_delete_file": ("Delete a file from Google Drive", FileIdArgs),
    "gdrive_move_file": ("Move a file to a different folder", MoveFileArgs),
    # Google Docs operations
    "gdocs_read": ("Read content from a Google Docs document", DocumentIdArgs),
    "gdocs_update": ("Update content in a Google Docs document", UpdateDocumentArgs),
    # Google Sheets operations
    "gsheets_get_metadata": (
        "Get metadata about a Google Sheets spreadsheet",
        SpreadsheetIdArgs,
    ),
    "gsheets_read": ("Read data from a Google Sheets spreadsheet", ReadSheetArgs),
    "gsheets_update": ("Update data in a Google Sheets spreadsheet", UpdateSheetArgs),
    # Comment operations
    "gdrive_create_comment": (
        "Create a comment on a Google Drive file (Docs or Sheets). For Docs, optionally "
        "anchor to text selection. For Sheets, anchor to specific cell.",
        CreateCommentArgs,
    ),
    "gdrive_list_comments": ("List all comments on a file", ListCommentsArgs),
    "gdrive_get_comment": ("Get details of a specific comment", CommentIdArgs),
    "gdrive_update_comment": ("Update the content of a comment", CommentContentArgs),
    "gdrive_delete_comment": ("Delete a comment", CommentIdArgs),
    "gdrive_reply_to_comment": ("Add a reply to a comment thread", CommentContentArgs),
    "gdrive_resolve_comment": ("Mark a comment as resolved", CommentIdArgs),
    "gdrive_reopen_comment": ("Reopen a resolved comment", CommentIdArgs),
    # Suggestion operations
    "gdocs_create_suggestion": (
        "Create a suggestion in a Google Docs document "
        "(Note: Limited API support, prefer comments)",
        CreateSuggestionArgs,
    ),
    "gdocs_list_suggestions": (
        "List all pending suggestions in a document",
        FileIdArgs,
    ),
    "gdocs_accept_suggestion": ("Accept a suggestion", SuggestionIdArgs),
    "gdocs_reject_suggestion": ("Reject a suggestion", SuggestionIdArgs),
    # Sharing operations
    "gdrive_share_file": ("Share a file with a user, group, or domain", ShareFileArgs),
    "gdrive_create_share_link": ("Create a shareable link for a file", CreateShareLinkArgs),
    "gdrive_list_permissions": ("List all permissions for a file", FileIdArgs),
    "gdrive_update_permission": ("Update an existing permission", UpdatePermissionArgs),
    "gdrive_remove_permission": ("Remove a permission from a file", PermissionIdArgs),
}


def validate_arguments(name: str, arguments: dict[str, Any] | None) -> ToolArguments:
    """Validate raw tool arguments against the tool's schema.

    Raises:
        KeyError: If the tool is unknown.
        pydantic.ValidationError: If the arguments do not match the schema.
    """
    _, schema = TOOL_SCHEMAS[name]
    return schema.model_validate(arguments or {})
