"""
Abstract Remote Store Interface

DESIGN DECISION: The ledger talks to its storage through a file-level
interface: read a whole file, replace a whole file, delete a file.
This allows us to:
1. Keep GitHub specifics (URLs, base64, HTTP codes) out of the ledger
2. Use an in-memory store for testing and offline use
3. Enforce the same version-tag rules on every backend

The store has no transactions and no multi-file atomicity. Each file is
replaced independently, guarded only by its version tag (the blob SHA).
"""

import base64
import binascii
import json
from abc import ABC, abstractmethod
from typing import Any, Optional

from ledgerly.models.transaction import RemoteFile


class RemoteStoreInterface(ABC):
    """
    Abstract interface for the file store holding the ledger.

    Any backend (GitHub, in-memory, ...) must implement these methods and
    keep a version-tag cache that is refreshed on every successful read or
    write and dropped on delete.
    """

    @abstractmethod
    async def read_file(self, path: str, default: Any = None) -> RemoteFile:
        """
        Read and decode a JSON file.

        Args:
            path: Repository path of the file
            default: Content returned when the file does not exist

        Returns:
            The file record. A missing file is NOT an error: it comes back
            with exists=False, sha=None and the default content.

        Raises:
            AuthenticationError: If the credential is rejected
            RemoteError: On transport failures or unexpected responses
        """
        pass

    @abstractmethod
    async def write_file(
        self,
        path: str,
        content: Any,
        message: str,
        sha: Optional[str] = None,
    ) -> str:
        """
        Replace a whole file with new JSON content.

        Args:
            path: Repository path of the file
            content: JSON-serializable content
            message: Commit message
            sha: Version tag of the file being replaced. When omitted the
                 cached tag is used; without a cached tag the current one
                 is read first. New files are created without a tag.

        Returns:
            The new version tag assigned by the store

        Raises:
            ConflictError: If the tag is stale or missing for an existing file
        """
        pass

    @abstractmethod
    async def delete_file(
        self,
        path: str,
        message: str,
        sha: Optional[str] = None,
    ) -> None:
        """
        Delete a file.

        Raises:
            NotFoundError: If the file does not exist
            ConflictError: If the tag is stale
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a file (or folder) exists."""
        pass


class VersionTagCache:
    """
    Last known version tag per file path.

    This is a derived index: it only saves a read before a write and is
    never authoritative. Tags are recorded from server responses, never
    guessed.
    """

    def __init__(self):
        self._tags: dict[str, str] = {}

    def get(self, path: str) -> Optional[str]:
        return self._tags.get(path)

    def set(self, path: str, sha: Optional[str]) -> None:
        if sha:
            self._tags[path] = sha
        else:
            self._tags.pop(path, None)

    def drop(self, path: str) -> None:
        self._tags.pop(path, None)

    def clear(self) -> None:
        self._tags.clear()

    def __contains__(self, path: str) -> bool:
        return path in self._tags

    def __len__(self) -> int:
        return len(self._tags)


# =============================================================================
# CONTENT ENCODING
# =============================================================================

def encode_content(content: Any) -> str:
    """Serialize content as pretty JSON and base64-encode it."""
    text = json.dumps(content, indent=2, ensure_ascii=False)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(encoded: str) -> Any:
    """
    Decode a base64 file body and parse it as JSON.

    GitHub wraps base64 bodies at 60 columns, so whitespace is ignored.
    An empty file decodes to None. A body that is not base64 or not UTF-8
    raises StorageError like any other unreadable file.
    """
    try:
        raw = base64.b64decode("".join(encoded.split()))
        text = raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise StorageError(f"File is not readable text: {e}")
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise StorageError(f"File is not valid JSON: {e}")


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConflictError(StorageError):
    """The version tag sent with a write does not match the stored file."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(
            message or f"Version conflict on {path}: re-read the file and retry"
        )


class AuthenticationError(StorageError):
    """The credential is missing, invalid or expired."""
    pass


class RemoteError(StorageError):
    """Transport failure or unexpected response from the remote store."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
