"""
Application Facade for Ledgerly

This module wires the data manager together and exposes the operations the
UI layer calls:
1. Start-up (token -> probe -> category index)
2. Month loading and refresh
3. Transaction add / update / delete / find
4. Summaries, rolling averages and month comparisons
5. Category list / add

DESIGN DECISION: Nothing runs before authentication succeeds.
Every operation raises AuthenticationError until initialize() has
established a token GitHub accepts. The cache, the remote client and the
other collaborators are owned by the facade instance and can all be
injected; there is no module-level state.
"""

from typing import Any, Optional, Union

import structlog

from ledgerly.audit import AuditLogger
from ledgerly.config import Settings, get_settings
from ledgerly.ledger import (
    CategoryRegistry,
    LedgerCache,
    TransactionService,
    TransactionValidator,
)
from ledgerly.models.transaction import (
    LedgerEntry,
    MonthComparison,
    MonthlySummary,
    MonthShard,
    RollingAverage,
    Transaction,
    TransactionInput,
    TransactionLocation,
    TransactionType,
    TransactionUpdate,
)
from ledgerly.queries import LedgerQueries
from ledgerly.services.credentials import (
    CredentialProvider,
    StoredCredentialProvider,
    TokenAuthenticator,
    TokenStore,
)
from ledgerly.services.storage import (
    AuthenticationError,
    GitHubContentsClient,
    RemoteStoreInterface,
)


logger = structlog.get_logger(__name__)

YearMonth = Union[str, int]


class LedgerlyApp:
    """
    Entry point for the UI layer.

    Usage:
        app = create_app(request_token=prompt_for_token)
        await app.initialize()
        await app.load_month(2024, 1)
        await app.add_transaction({...}, "expense")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[RemoteStoreInterface] = None,
        authenticator: Optional[TokenAuthenticator] = None,
        credential_provider: Optional[CredentialProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings()
        app_settings = self._settings.app
        base_path = self._settings.github.base_path

        self._audit_logger = audit_logger or AuditLogger()
        self._store = store or GitHubContentsClient(self._settings.github)

        if authenticator is None and isinstance(self._store, GitHubContentsClient):
            provider = credential_provider or StoredCredentialProvider(
                store=TokenStore(app_settings.credential_store_file, app_settings.token_storage_key),
                fallback_token=self._settings.github.token,
            )
            authenticator = TokenAuthenticator(self._store, provider, self._audit_logger)
        self._authenticator = authenticator

        self._cache = LedgerCache(self._store, base_path, self._audit_logger)
        self._transactions = TransactionService(
            self._cache,
            TransactionValidator(),
            self._audit_logger,
            currency_symbol=app_settings.currency_symbol,
        )
        self._queries = LedgerQueries(
            self._cache,
            rolling_window=app_settings.rolling_window_months,
            burn_rate_days=app_settings.burn_rate_days,
        )
        self._categories = CategoryRegistry(self._store, base_path, self._audit_logger)
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def cache(self) -> LedgerCache:
        return self._cache

    @property
    def store(self) -> RemoteStoreInterface:
        return self._store

    def _require_ready(self) -> None:
        if not self._ready:
            raise AuthenticationError("Ledgerly is not initialized; authenticate first")

    async def initialize(self) -> None:
        """
        Authenticate and load the category index.

        Raises:
            AuthenticationError: If no valid token could be obtained
        """
        if self._authenticator is not None:
            await self._authenticator.authenticate()
        await self._categories.load()
        self._ready = True
        logger.info("ledgerly_initialized", base_path=self._cache.base_path)

    async def close(self) -> None:
        if isinstance(self._store, GitHubContentsClient):
            await self._store.close()
        self._ready = False

    async def __aenter__(self) -> "LedgerlyApp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Months
    # -------------------------------------------------------------------------

    async def load_month(self, year: YearMonth, month: YearMonth) -> MonthShard:
        self._require_ready()
        return await self._cache.get_shard(year, month)

    async def refresh_month(self, year: YearMonth, month: YearMonth) -> MonthShard:
        """Discard the cached month and read it from GitHub again."""
        self._require_ready()
        shard = await self._cache.refresh(year, month)
        self._audit_logger.log_month_refreshed(str(shard.key))
        return shard

    async def initialize_month(self, year: YearMonth, month: YearMonth) -> list[str]:
        self._require_ready()
        return await self._transactions.initialize_month(year, month)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        data: Union[TransactionInput, dict[str, Any]],
        transaction_type: Union[TransactionType, str],
    ) -> Transaction:
        self._require_ready()
        return await self._transactions.add_transaction(data, transaction_type)

    async def update_transaction(
        self,
        transaction_id: str,
        updates: Union[TransactionUpdate, dict[str, Any]],
    ) -> Transaction:
        self._require_ready()
        return await self._transactions.update_transaction(transaction_id, updates)

    async def delete_transaction(self, transaction_id: str) -> bool:
        self._require_ready()
        return await self._transactions.delete_transaction(transaction_id)

    def find_transaction(
        self,
        transaction_id: str,
        year: Optional[YearMonth] = None,
        month: Optional[YearMonth] = None,
    ) -> Optional[TransactionLocation]:
        self._require_ready()
        return self._transactions.find_transaction(transaction_id, year, month)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def summary(self, year: YearMonth, month: YearMonth) -> MonthlySummary:
        self._require_ready()
        return self._queries.summary(year, month)

    def combined_view(self, year: YearMonth, month: YearMonth) -> list[LedgerEntry]:
        self._require_ready()
        return self._queries.combined_view(year, month)

    async def rolling_average(
        self,
        year: YearMonth,
        month: YearMonth,
        months: Optional[int] = None,
    ) -> RollingAverage:
        self._require_ready()
        return await self._queries.rolling_average(year, month, months)

    async def month_comparison(self, year: YearMonth, month: YearMonth) -> MonthComparison:
        self._require_ready()
        return await self._queries.month_comparison(year, month)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def list_categories(self, transaction_type: Union[TransactionType, str]) -> list[str]:
        self._require_ready()
        return self._categories.names(transaction_type)

    async def add_category(self, name: str, transaction_type: Union[TransactionType, str]) -> str:
        self._require_ready()
        return await self._categories.add(name, transaction_type)


def create_app(
    request_token=None,
    settings: Optional[Settings] = None,
) -> LedgerlyApp:
    """
    Factory function to create the application against GitHub.

    Args:
        request_token: Callable asked for a new token when the stored one is
                       missing or rejected. Receives a reason message and
                       returns the token, or None to give up.
        settings: Settings to use. Loaded from the environment if None.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    audit_logger = AuditLogger()
    client = GitHubContentsClient(settings.github)
    provider = StoredCredentialProvider(
        store=TokenStore(app_settings.credential_store_file, app_settings.token_storage_key),
        request_token=request_token,
        fallback_token=settings.github.token,
    )
    return LedgerlyApp(
        settings=settings,
        store=client,
        authenticator=TokenAuthenticator(client, provider, audit_logger),
        audit_logger=audit_logger,
    )
