"""Credential management package."""

from ledgerly.services.credentials.provider import (
    TOKEN_PREFIXES,
    CredentialProvider,
    StoredCredentialProvider,
    TokenAuthenticator,
    TokenStore,
    is_valid_token_format,
)

__all__ = [
    "TOKEN_PREFIXES",
    "CredentialProvider",
    "StoredCredentialProvider",
    "TokenAuthenticator",
    "TokenStore",
    "is_valid_token_format",
]
