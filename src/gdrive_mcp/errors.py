"""Error taxonomy and classification for Google API failures.

Every failure that leaves the core is translated into one of the
``GoogleDriveError`` subclasses below. ``classify_error`` performs the
translation from an HTTP status code; it runs after the retry policy in
``gdrive_mcp.retry`` has given up, so it is the last step before an error
reaches the tool boundary.
"""

from typing import Any

import httpx


class GoogleDriveError(Exception):
    """Base class for all errors surfaced to tool callers.

    Attributes:
        kind: Short taxonomy name reported to the caller.
        status_code: HTTP status code that caused the error, if any.
        original_error: Underlying exception, if any.
    """

    kind = "InternalError"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.original_error = original_error

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        """Structured form returned through the tool boundary."""
        data: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class AuthenticationError(GoogleDriveError):
    """Credentials were rejected (401/403) or could not be renewed."""

    kind = "AuthenticationError"


class NotFoundError(GoogleDriveError):
    """The requested file or resource does not exist (404)."""

    kind = "NotFoundError"


class RateLimitError(GoogleDriveError):
    """The API rejected the call for exceeding its rate limit (429)."""

    kind = "RateLimitError"


class InvalidRequestError(GoogleDriveError):
    """The request parameters were rejected (400) or the tool is unknown."""

    kind = "InvalidRequestError"


class InternalError(GoogleDriveError):
    """Any other API or transport failure."""

    kind = "InternalError"


class AuthorizationFlowError(GoogleDriveError):
    """The interactive OAuth authorization flow failed."""

    kind = "AuthorizationFlowError"


class AuthorizationTimeoutError(AuthorizationFlowError):
    """No callback arrived before the flow timed out."""


class AuthorizationDeniedError(AuthorizationFlowError):
    """The identity provider redirected back with an ``error`` parameter."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"OAuth error: {reason}")
        self.reason = reason


class MissingAuthorizationCodeError(AuthorizationFlowError):
    """The callback carried neither an error nor an authorization code."""


class TokenExchangeError(AuthorizationFlowError):
    """Exchanging the authorization code for tokens failed."""


class StoreIOError(GoogleDriveError):
    """The credential store could not be read or written."""

    kind = "StoreIOError"


def get_status_code(error: BaseException) -> int | None:
    """Extract an HTTP status code from an exception, if it carries one."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    if isinstance(error, GoogleDriveError):
        return error.status_code

    for attr in ("status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    return None


def _extract_message(error: BaseException) -> str:
    """Best-effort human-readable message for an API failure."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            body = error.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("error")
            if isinstance(detail, dict) and detail.get("message"):
                return str(detail["message"])
            if isinstance(detail, str):
                return body.get("error_description") or detail
        return error.response.reason_phrase or str(error)

    return str(error)


def classify_error(error: BaseException) -> GoogleDriveError:
    """Translate a failure into the user-facing error taxonomy.

    Errors that are already classified are returned unchanged.

    Args:
        error: The exception raised by an API call.

    Returns:
        A ``GoogleDriveError`` subclass instance chained to ``error``.
    """
    if isinstance(error, GoogleDriveError):
        return error

    code = get_status_code(error)
    message = _extract_message(error)

    classified: GoogleDriveError
    if code in (401, 403):
        classified = AuthenticationError(
            f"Authentication error: {message or 'Invalid or expired credentials'}",
            status_code=code,
        )
    elif code == 404:
        classified = NotFoundError(
            "Resource not found: "
            f"{message or 'The requested file or resource does not exist'}",
            status_code=code,
        )
    elif code == 429:
        classified = RateLimitError(
            "Rate limit exceeded. Please try again later.", status_code=code
        )
    elif code == 400:
        classified = InvalidRequestError(
            f"Invalid request: {message or 'The request parameters are invalid'}",
            status_code=code,
        )
    else:
        classified = InternalError(
            f"Google Drive API error: {message or 'Unknown error occurred'}",
            status_code=code,
        )

    classified.original_error = error
    classified.__cause__ = error
    return classified
