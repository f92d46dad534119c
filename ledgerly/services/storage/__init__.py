"""
Storage Services Package

Provides the abstract remote store interface and its implementations.
GitHub is the real backend; the in-memory store follows the same
version-tag rules for tests and offline use.
"""

from ledgerly.services.storage.interface import (
    AuthenticationError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    RemoteError,
    RemoteStoreInterface,
    StorageError,
    VersionTagCache,
    decode_content,
    encode_content,
)
from ledgerly.services.storage.github import GitHubContentsClient
from ledgerly.services.storage.memory import InMemoryRemoteStore, blob_sha

__all__ = [
    # Interface
    "RemoteStoreInterface",
    "VersionTagCache",
    "decode_content",
    "encode_content",
    # Exceptions
    "AuthenticationError",
    "ConflictError",
    "DuplicateError",
    "NotFoundError",
    "RemoteError",
    "StorageError",
    # Implementations
    "GitHubContentsClient",
    "InMemoryRemoteStore",
    "blob_sha",
]
