"""Helpers shaping Drive API payloads and queries."""

from typing import Any

MIME_TYPES = {
    "FOLDER": "application/vnd.google-apps.folder",
    "DOCUMENT": "application/vnd.google-apps.document",
    "SPREADSHEET": "application/vnd.google-apps.spreadsheet",
    "PRESENTATION": "application/vnd.google-apps.presentation",
    "PDF": "application/pdf",
    "TEXT": "text/plain",
}

# Google Workspace types need export
EXPORT_MIME_TYPES = {
    MIME_TYPES["DOCUMENT"]: "text/plain",
    MIME_TYPES["SPREADSHEET"]: "text/csv",
    MIME_TYPES["PRESENTATION"]: "text/plain",
}


def is_google_workspace_file(mime_type: str) -> bool:
    return mime_type.startswith("application/vnd.google-apps.")


def get_export_mime_type(mime_type: str) -> str | None:
    return EXPORT_MIME_TYPES.get(mime_type)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_search_query(
    query: str | None = None,
    mime_type: str | None = None,
    folder_id: str | None = None,
) -> str:
    """Build a Drive API ``q`` expression. Trashed files are always excluded."""
    conditions = ["trashed = false"]

    if query:
        conditions.append(f"name contains '{_escape(query)}'")
    if mime_type:
        conditions.append(f"mimeType = '{_escape(mime_type)}'")
    if folder_id:
        conditions.append(f"'{_escape(folder_id)}' in parents")

    return " and ".join(conditions)


def format_file_metadata(item: dict[str, Any]) -> dict[str, Any]:
    owners = item.get("owners")
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "mimeType": item.get("mimeType"),
        "createdTime": item.get("createdTime"),
        "modifiedTime": item.get("modifiedTime"),
        "size": item.get("size"),
        "webViewLink": item.get("webViewLink"),
        "owners": (
            [
                {
                    "displayName": o.get("displayName") or "Unknown",
                    "emailAddress": o.get("emailAddress") or "",
                }
                for o in owners
            ]
            if owners is not None
            else None
        ),
        "parents": item.get("parents"),
    }


def format_reply(reply: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": reply.get("id"),
        "content": reply.get("content"),
        "author": (reply.get("author") or {}).get("displayName") or "Unknown",
        "createdTime": reply.get("createdTime"),
        "modifiedTime": reply.get("modifiedTime"),
    }


def format_comment(comment: dict[str, Any]) -> dict[str, Any]:
    result = format_reply(comment)
    result["resolved"] = bool(comment.get("resolved", False))
    if comment.get("anchor"):
        result["anchor"] = comment["anchor"]
    if comment.get("quotedFileContent"):
        result["quotedFileContent"] = comment["quotedFileContent"]
    if "replies" in comment:
        result["replies"] = [format_reply(r) for r in comment.get("replies") or []]
    return result


def format_permission(permission: dict[str, Any]) -> dict[str, Any]:
    return {
        key: permission.get(key)
        for key in (
            "id",
            "type",
            "role",
            "emailAddress",
            "displayName",
            "domain",
            "expirationTime",
            "allowFileDiscovery",
        )
        if key in permission
    }


def extract_doc_text(body: dict[str, Any]) -> str:
    """Extract plain text from a Google Docs body structure."""
    text_parts = []
    for element in body.get("content", []):
        for para_element in element.get("paragraph", {}).get("elements", []):
            text_parts.append(para_element.get("textRun", {}).get("content", ""))
    return "".join(text_parts)


def extract_suggestions(body: dict[str, Any]) -> list[dict[str, Any]]:
    """Collect suggested insertions and deletions from a Docs body."""
    suggestions = []
    for element in body.get("content", []):
        for para_element in element.get("paragraph", {}).get("elements", []):
            text_run = para_element.get("textRun")
            if not text_run:
                continue
            if text_run.get("suggestedInsertionIds"):
                suggestions.append(
                    {
                        "type": "insert",
                        "suggestionIds": text_run["suggestedInsertionIds"],
                        "content": text_run.get("content", ""),
                        "startIndex": para_element.get("startIndex"),
                        "endIndex": para_element.get("endIndex"),
                    }
                )
            if text_run.get("suggestedDeletionIds"):
                suggestions.append(
                    {
                        "type": "delete",
                        "suggestionIds": text_run["suggestedDeletionIds"],
                        "content": text_run.get("content", ""),
                        "startIndex": para_element.get("startIndex"),
                        "endIndex": para_element.get("endIndex"),
                    }
                )
    return suggestions
