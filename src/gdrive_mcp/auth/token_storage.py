"""Local persistence for the OAuth credential.

A single credential record is stored as JSON with owner-only permissions.

Storage Location:
    $GOOGLE_DRIVE_MCP_TOKEN_DIR/tokens.json when the override is set,
    otherwise $XDG_DATA_HOME/google-drive-mcp/tokens.json
    (XDG_DATA_HOME defaults to ~/.local/share).
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from gdrive_mcp.auth.models import Credential, TokenStatus
from gdrive_mcp.errors import StoreIOError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "google-drive-mcp"
TOKEN_FILE_NAME = "tokens.json"
TOKEN_DIR_ENV = "GOOGLE_DRIVE_MCP_TOKEN_DIR"


def get_token_path() -> Path:
    """Resolve the per-user token file location.

    Returns:
        Path to tokens.json.
    """
    override = os.environ.get(TOKEN_DIR_ENV)
    if override:
        return Path(override).expanduser() / TOKEN_FILE_NAME

    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(data_home).expanduser() / APP_DIR_NAME / TOKEN_FILE_NAME


class CredentialStore:
    """JSON-file storage for a single OAuth credential.

    The directory is created with mode 0700 on first save and the file is
    written with mode 0600. Saves go through a temporary file in the same
    directory followed by an atomic rename, so readers never observe a
    partially written record.

    Attributes:
        token_path: Path to the tokens.json file.

    Example:
        ```python
        store = CredentialStore()
        store.save(credential)

        credential = store.load()
        if credential is None:
            print("Not authenticated")
        ```
    """

    def __init__(self, token_path: Path | None = None) -> None:
        """Initialize credential storage.

        Args:
            token_path: Custom path for tokens.json. Resolved from the
                environment when not provided.
        """
        self.token_path = token_path or get_token_path()

    @property
    def credentials_dir(self) -> Path:
        return self.token_path.parent

    def _ensure_credentials_dir(self) -> None:
        """Create the credentials directory with owner-only access if missing."""
        creds_dir = self.credentials_dir
        if creds_dir.exists():
            return
        creds_dir.mkdir(parents=True, mode=0o700)
        # mkdir's mode is filtered through the umask
        creds_dir.chmod(0o700)

    def load(self) -> Credential | None:
        """Read the stored credential.

        Returns:
            The stored Credential, or None when no record exists.

        Raises:
            StoreIOError: If the file exists but cannot be read or parsed.
        """
        try:
            raw = self.token_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise StoreIOError(
                f"Credential file {self.token_path} is corrupted", original_error=e
            ) from e
        except OSError as e:
            raise StoreIOError(
                f"Failed to read credential file {self.token_path}: {e}", original_error=e
            ) from e

        try:
            return Credential.model_validate_json(raw)
        except ValidationError as e:
            raise StoreIOError(
                f"Credential file {self.token_path} is corrupted", original_error=e
            ) from e

    def save(self, credential: Credential) -> None:
        """Write the credential, replacing any previous record.

        Raises:
            StoreIOError: If the directory or file cannot be written.
        """
        data = credential.model_dump(exclude_none=True)

        try:
            self._ensure_credentials_dir()
            fd, tmp_name = tempfile.mkstemp(
                dir=self.credentials_dir, prefix=".tokens-", suffix=".tmp"
            )
        except OSError as e:
            raise StoreIOError(
                f"Failed to prepare credential directory {self.credentials_dir}: {e}",
                original_error=e,
            ) from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            # Set file permissions to owner read/write only (600)
            tmp_path.chmod(0o600)
            os.replace(tmp_path, self.token_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreIOError(
                f"Failed to write credential file {self.token_path}: {e}", original_error=e
            ) from e

        logger.debug("Saved credential to %s", self.token_path)

    def delete(self) -> None:
        """Remove the stored credential. A missing record is not an error.

        Raises:
            StoreIOError: If the file exists but cannot be removed.
        """
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StoreIOError(
                f"Failed to delete credential file {self.token_path}: {e}", original_error=e
            ) from e

    def is_valid(self) -> bool:
        """True if a credential exists and is unexpired or refreshable."""
        credential = self.load()
        if credential is None:
            return False
        return not credential.is_expired() or credential.can_refresh

    def get_status(self) -> TokenStatus:
        """Get the status of the stored credential.

        Returns:
            TokenStatus indicating the credential's current state.
        """
        try:
            credential = self.load()
        except StoreIOError:
            return TokenStatus.INVALID

        if credential is None:
            return TokenStatus.MISSING

        if credential.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID
