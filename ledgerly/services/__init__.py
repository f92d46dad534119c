"""Services package."""

from ledgerly.services.credentials import (
    CredentialProvider,
    StoredCredentialProvider,
    TokenAuthenticator,
    TokenStore,
    is_valid_token_format,
)
from ledgerly.services.storage import (
    AuthenticationError,
    ConflictError,
    DuplicateError,
    GitHubContentsClient,
    InMemoryRemoteStore,
    NotFoundError,
    RemoteError,
    RemoteStoreInterface,
    StorageError,
)

__all__ = [
    # Credentials
    "CredentialProvider",
    "StoredCredentialProvider",
    "TokenAuthenticator",
    "TokenStore",
    "is_valid_token_format",
    # Storage services
    "AuthenticationError",
    "ConflictError",
    "DuplicateError",
    "GitHubContentsClient",
    "InMemoryRemoteStore",
    "NotFoundError",
    "RemoteError",
    "RemoteStoreInterface",
    "StorageError",
]
