"""
In-Memory Storage Implementation

Holds the ledger files in a dict with the same version-tag rules as GitHub:
tags are git blob SHAs of the encoded content, and a write whose tag does
not match the stored file is rejected with ConflictError.

Used by the test suite and for running the ledger without a network.
`seed()` changes a file behind the client's back (another writer), and
`fail()` makes every operation on a path raise a given error.
"""

import asyncio
import base64
import hashlib
from collections import Counter
from typing import Any, Optional

from ledgerly.models.transaction import RemoteFile
from ledgerly.services.storage.interface import (
    ConflictError,
    NotFoundError,
    RemoteStoreInterface,
    StorageError,
    VersionTagCache,
    decode_content,
    encode_content,
)


def blob_sha(encoded: str) -> str:
    """Git blob SHA-1 of a base64-encoded body."""
    data = base64.b64decode(encoded)
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()


class InMemoryRemoteStore(RemoteStoreInterface):
    """
    Dict-backed remote store with compare-and-swap writes.

    Attributes:
        versions: The client-side version-tag cache
        reads: Number of reads per path
        commits: (path, message) for every successful write or delete
    """

    def __init__(self, files: Optional[dict[str, Any]] = None):
        self._files: dict[str, tuple[str, str]] = {}
        self._failures: dict[str, StorageError] = {}
        self.versions = VersionTagCache()
        self.reads: Counter = Counter()
        self.commits: list[tuple[str, str]] = []

        for path, content in (files or {}).items():
            self.seed(path, content)

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def seed(self, path: str, content: Any) -> str:
        """Store content directly, as another writer would; returns its SHA."""
        encoded = encode_content(content)
        sha = blob_sha(encoded)
        self._files[path] = (encoded, sha)
        return sha

    def seed_raw(self, path: str, data: bytes) -> str:
        """Store raw bytes that may not be valid JSON or UTF-8; returns the SHA."""
        encoded = base64.b64encode(data).decode("ascii")
        sha = blob_sha(encoded)
        self._files[path] = (encoded, sha)
        return sha

    def fail(self, path: str, error: Optional[StorageError] = None) -> None:
        """Make every operation on `path` raise `error`."""
        self._failures[path] = error or StorageError(f"Simulated failure for {path}")

    def recover(self, path: str) -> None:
        self._failures.pop(path, None)

    def content(self, path: str) -> Any:
        """Decoded content currently stored at `path` (None if absent)."""
        if path not in self._files:
            return None
        return decode_content(self._files[path][0])

    def sha(self, path: str) -> Optional[str]:
        stored = self._files.get(path)
        return stored[1] if stored else None

    @property
    def paths(self) -> list[str]:
        return sorted(self._files)

    async def _enter(self, path: str) -> None:
        # Every operation suspends once, like a network call would
        await asyncio.sleep(0)
        if path in self._failures:
            raise self._failures[path]

    # -------------------------------------------------------------------------
    # RemoteStoreInterface
    # -------------------------------------------------------------------------

    async def read_file(self, path: str, default: Any = None) -> RemoteFile:
        await self._enter(path)
        self.reads[path] += 1

        stored = self._files.get(path)
        if stored is None:
            self.versions.drop(path)
            return RemoteFile(path=path, content=default, sha=None, exists=False)

        encoded, sha = stored
        content = decode_content(encoded)
        self.versions.set(path, sha)
        return RemoteFile(
            path=path,
            content=default if content is None else content,
            sha=sha,
            exists=True,
        )

    async def _resolve_sha(self, path: str, sha: Optional[str]) -> Optional[str]:
        if sha:
            return sha
        cached = self.versions.get(path)
        if cached:
            return cached
        return (await self.read_file(path)).sha

    async def write_file(
        self,
        path: str,
        content: Any,
        message: str,
        sha: Optional[str] = None,
    ) -> str:
        sha = await self._resolve_sha(path, sha)
        await self._enter(path)

        current = self._files.get(path)
        current_sha = current[1] if current else None
        if sha != current_sha:
            self.versions.drop(path)
            raise ConflictError(path)

        encoded = encode_content(content)
        new_sha = blob_sha(encoded)
        self._files[path] = (encoded, new_sha)
        self.versions.set(path, new_sha)
        self.commits.append((path, message))
        return new_sha

    async def delete_file(
        self,
        path: str,
        message: str,
        sha: Optional[str] = None,
    ) -> None:
        sha = await self._resolve_sha(path, sha)
        await self._enter(path)

        current = self._files.get(path)
        if current is None or not sha:
            self.versions.drop(path)
            raise NotFoundError(f"File not found: {path}")
        if sha != current[1]:
            self.versions.drop(path)
            raise ConflictError(path)

        del self._files[path]
        self.versions.drop(path)
        self.commits.append((path, message))

    async def exists(self, path: str) -> bool:
        await self._enter(path)
        prefix = path.rstrip("/") + "/"
        return path in self._files or any(p.startswith(prefix) for p in self._files)
