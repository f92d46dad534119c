"""
GitHub Contents Storage Implementation

DESIGN DECISION: The ledger lives in a GitHub repository as plain JSON files:
1. The user can browse and edit their data on github.com
2. No database setup required
3. Every change is a commit, so history and backup come for free
4. Files are small (one month of one type each)

TRADEOFFS:
- No transactions: each file is replaced independently
- Every update must carry the blob SHA of the file it replaces;
  a stale SHA is rejected (HTTP 409) and surfaced as ConflictError
- No automatic retry of writes: the caller decides whether to re-read

Only the token probe is retried on transport failures, because it is a
read-only call made before any ledger state exists.
"""

from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledgerly.config import GitHubSettings, get_settings
from ledgerly.models.transaction import RemoteFile
from ledgerly.services.storage.interface import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RemoteError,
    RemoteStoreInterface,
    StorageError,
    VersionTagCache,
    decode_content,
    encode_content,
)


logger = structlog.get_logger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"


class GitHubContentsClient(RemoteStoreInterface):
    """
    Client for the GitHub repository contents API.

    Injects the bearer token into every request, base64-encodes file
    bodies, and caches the last known blob SHA per path so that repeated
    updates do not need a read before each write.
    """

    def __init__(
        self,
        settings: Optional[GitHubSettings] = None,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Repository settings. Loaded from the environment if None.
            token: Access token. Falls back to the configured token.
            http_client: Preconfigured httpx client (tests pass one with a
                         mock transport). Created from settings if None.
        """
        self._settings = settings or get_settings().github
        self._token = token or self._settings.token
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._settings.api_url,
            timeout=self._settings.timeout_seconds,
        )
        self.versions = VersionTagCache()
        self.login: Optional[str] = None

    async def __aenter__(self) -> "GitHubContentsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def set_token(self, token: Optional[str]) -> None:
        """Replace the token used for subsequent requests."""
        self._token = token.strip() if token else None
        self.login = None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": GITHUB_ACCEPT,
            "Content-Type": "application/json",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def validate_token(self) -> bool:
        """
        Probe the API with the current token.

        Returns:
            True if GitHub accepts the token, False if it is rejected
            or no token is set.

        Raises:
            RemoteError: If GitHub stays unreachable after retries
        """
        if not self._token:
            return False

        try:
            response = await self._probe_user()
        except httpx.TransportError as e:
            raise RemoteError(f"GitHub is unreachable: {e}")

        if response.status_code == 200:
            self.login = response.json().get("login")
            logger.info("token_validated", login=self.login)
            return True

        logger.warning("token_validation_failed", status_code=response.status_code)
        return False

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _probe_user(self) -> httpx.Response:
        return await self._http.get("/user", headers=self._headers())

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def _contents_url(self, path: str) -> str:
        return (
            f"/repos/{self._settings.owner}/{self._settings.repo}"
            f"/contents/{quote(path.strip('/'))}"
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a contents API request, translating transport failures."""
        url = self._contents_url(path)
        logger.debug("github_request", method=method, path=path)
        try:
            return await self._http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            raise RemoteError(f"{method} {path} failed: {e}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return str(response.json().get("message", ""))
        except ValueError:
            return response.text

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        """Map an HTTP error response onto the storage error taxonomy."""
        status = response.status_code
        if status < 400:
            return

        message = self._error_message(response)

        if status == 401:
            raise AuthenticationError(f"GitHub rejected the token: {message}")
        if status == 403:
            if response.headers.get("x-ratelimit-remaining") == "0":
                raise RemoteError(f"GitHub rate limit exceeded: {message}", status)
            raise AuthenticationError(f"Token lacks access to {path}: {message}")
        if status == 404:
            raise NotFoundError(f"File not found: {path}")
        if status == 409:
            raise ConflictError(path)
        if status == 422 and "sha" in message.lower():
            # GitHub answers 422 when an existing file is updated without a sha
            raise ConflictError(path, f"Version tag missing for existing file {path}: {message}")

        raise RemoteError(f"GitHub API error: {status} - {message}", status)

    # -------------------------------------------------------------------------
    # File operations
    # -------------------------------------------------------------------------

    async def read_file(self, path: str, default: Any = None) -> RemoteFile:
        """Read a JSON file; a missing file comes back with exists=False."""
        response = await self._request("GET", path, params={"ref": self._settings.branch})

        if response.status_code == 404:
            self.versions.drop(path)
            return RemoteFile(path=path, content=default, sha=None, exists=False)

        self._raise_for_status(response, path)

        data = response.json()
        if not isinstance(data, dict) or "sha" not in data:
            raise StorageError(f"{path} is not a file")

        content = decode_content(data.get("content") or "")
        self.versions.set(path, data["sha"])

        return RemoteFile(
            path=path,
            content=default if content is None else content,
            sha=data["sha"],
            exists=True,
        )

    async def _resolve_sha(self, path: str, sha: Optional[str]) -> Optional[str]:
        if sha:
            return sha
        cached = self.versions.get(path)
        if cached:
            return cached
        current = await self.read_file(path)
        return current.sha

    async def write_file(
        self,
        path: str,
        content: Any,
        message: str,
        sha: Optional[str] = None,
    ) -> str:
        """Create or replace a file, returning its new blob SHA."""
        sha = await self._resolve_sha(path, sha)

        body = {
            "message": message,
            "content": encode_content(content),
            "branch": self._settings.branch,
        }
        if sha:
            body["sha"] = sha

        response = await self._request("PUT", path, json=body)
        try:
            self._raise_for_status(response, path)
        except ConflictError:
            self.versions.drop(path)
            logger.warning("github_write_conflict", path=path, sha=sha)
            raise

        new_sha = response.json()["content"]["sha"]
        self.versions.set(path, new_sha)
        logger.info("github_file_written", path=path, sha=new_sha, created=sha is None)
        return new_sha

    async def delete_file(
        self,
        path: str,
        message: str,
        sha: Optional[str] = None,
    ) -> None:
        """Delete a file; the cached SHA is dropped afterwards."""
        sha = await self._resolve_sha(path, sha)
        if not sha:
            raise NotFoundError(f"File not found: {path}")

        body = {
            "message": message,
            "sha": sha,
            "branch": self._settings.branch,
        }
        response = await self._request("DELETE", path, json=body)
        try:
            self._raise_for_status(response, path)
        except (ConflictError, NotFoundError):
            self.versions.drop(path)
            raise

        self.versions.drop(path)
        logger.info("github_file_deleted", path=path)

    async def exists(self, path: str) -> bool:
        """Check whether a file or folder exists on the configured branch."""
        response = await self._request("GET", path, params={"ref": self._settings.branch})
        if response.status_code == 404:
            return False
        self._raise_for_status(response, path)
        return True
