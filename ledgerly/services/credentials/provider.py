"""
Credential Management

DESIGN DECISION: The data manager never asks the user for anything itself.
It depends on a CredentialProvider that hands out a token, and that is told
when the token turned out to be invalid. Whether the replacement comes from
a terminal prompt, a web form or an environment variable is the caller's
business.

The token is remembered in a small local key-value file under a fixed key.
Its format is checked by prefix before it is ever sent to GitHub, and its
validity is confirmed by a lightweight authenticated probe.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Protocol

import structlog

from ledgerly.audit import AuditLogger
from ledgerly.config import get_settings
from ledgerly.services.storage.interface import AuthenticationError


logger = structlog.get_logger(__name__)

# Classic personal tokens and fine-grained tokens
TOKEN_PREFIXES = ("ghp_", "github_pat_")


def is_valid_token_format(token: Optional[str]) -> bool:
    """Basic shape check: a GitHub personal access token prefix."""
    if not token or not isinstance(token, str):
        return False
    return token.strip().startswith(TOKEN_PREFIXES)


class TokenStore:
    """
    Local key-value file holding the access token.

    The file is a JSON object; the token lives under a single fixed key,
    other keys are preserved.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        key: Optional[str] = None,
    ):
        app_settings = get_settings().app if path is None or key is None else None
        self._path = Path(path) if path is not None else app_settings.credential_store_file
        self._key = key or app_settings.token_storage_key

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("credential_store_unreadable", path=str(self._path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        try:
            self._path.chmod(0o600)
        except OSError as e:
            logger.debug("credential_store_chmod_failed", path=str(self._path), error=str(e))

    def get(self) -> Optional[str]:
        """The stored token, or None."""
        token = self._read().get(self._key)
        return token if isinstance(token, str) and token.strip() else None

    def save(self, token: Optional[str]) -> bool:
        """Store a token (trimmed). Blank tokens are refused."""
        if not token or not token.strip():
            return False
        data = self._read()
        data[self._key] = token.strip()
        self._write(data)
        return True

    def clear(self) -> None:
        data = self._read()
        if self._key in data:
            del data[self._key]
            self._write(data)


class CredentialProvider(ABC):
    """
    Source of the access token.

    get_credential() is asked first; on_invalid() is asked whenever the
    current token is missing, malformed or rejected by GitHub. Returning
    None from on_invalid() aborts authentication.
    """

    @abstractmethod
    def get_credential(self) -> Optional[str]:
        pass

    @abstractmethod
    def on_invalid(self) -> Optional[str]:
        pass

    def on_accepted(self, token: str) -> None:
        """Called once a token has passed the probe."""
        pass


class StoredCredentialProvider(CredentialProvider):
    """
    Reads the token from the local store, falling back to a configured one.

    When the token is invalid the store is cleared and `request_token` (if
    any) is called with a message explaining why; its answer is the new
    token. Accepted tokens are saved back to the store.
    """

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        request_token: Optional[Callable[[str], Optional[str]]] = None,
        fallback_token: Optional[str] = None,
    ):
        self._store = store or TokenStore()
        self._request_token = request_token
        self._fallback_token = fallback_token
        self._attempts = 0

    def get_credential(self) -> Optional[str]:
        return self._store.get() or self._fallback_token

    def on_invalid(self) -> Optional[str]:
        self._store.clear()
        self._fallback_token = None
        if self._request_token is None:
            return None

        message = (
            "No GitHub token configured."
            if self._attempts == 0
            else "The provided token was rejected."
        )
        self._attempts += 1
        token = self._request_token(message)
        return token.strip() if token and token.strip() else None

    def on_accepted(self, token: str) -> None:
        self._store.save(token)


class TokenClient(Protocol):
    """What the authenticator needs from a remote client."""

    def set_token(self, token: Optional[str]) -> None: ...

    async def validate_token(self) -> bool: ...


class TokenAuthenticator:
    """
    Establishes a working token on a client before any ledger operation.

    Flow:
    1. Ask the provider for a token
    2. Reject it locally if the prefix is wrong
    3. Probe GitHub with it
    4. On failure ask the provider for a replacement, up to max_attempts
    """

    def __init__(
        self,
        client: TokenClient,
        provider: CredentialProvider,
        audit_logger: Optional[AuditLogger] = None,
        max_attempts: int = 3,
    ):
        self._client = client
        self._provider = provider
        self._audit_logger = audit_logger
        self._max_attempts = max_attempts

    async def authenticate(self) -> str:
        """
        Find a token GitHub accepts and install it on the client.

        Returns:
            The accepted token

        Raises:
            AuthenticationError: If no valid token could be obtained
        """
        token = self._provider.get_credential()

        for _ in range(self._max_attempts):
            if not token:
                reason = "missing"
            elif not is_valid_token_format(token):
                reason = "bad_format"
            else:
                self._client.set_token(token)
                if await self._client.validate_token():
                    self._provider.on_accepted(token)
                    if self._audit_logger:
                        self._audit_logger.log_token_accepted(getattr(self._client, "login", None))
                    return token
                reason = "rejected"

            self._client.set_token(None)
            if self._audit_logger:
                self._audit_logger.log_token_rejected(reason)

            token = self._provider.on_invalid()
            if token is None:
                raise AuthenticationError("A valid GitHub token is required to use Ledgerly")

        raise AuthenticationError("The provided token is invalid. Please check and try again.")
