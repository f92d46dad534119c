"""
In-Memory Ledger Cache

Holds the months that have been loaded from the repository, keyed by year
then month. Each month is one MonthShard with its income and expense
sequences.

DESIGN DECISION: Concurrent loads of the same month are coalesced. The
first caller starts one task that reads both files in parallel; every
caller that arrives while it is running awaits that same task. All of them
see the same shard object (or the same error), and the repository is read
exactly once. The in-flight entry is removed as soon as the task finishes,
whatever the outcome.

Writes never invalidate the cache: the operations layer mutates the
loaded sequences in place and then writes them out.
"""

import asyncio
from functools import partial
from typing import Iterator, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from ledgerly.audit import AuditLogger
from ledgerly.ledger.shards import normalize_shard, shard_path_for
from ledgerly.models.transaction import (
    MonthShard,
    RemoteFile,
    ShardKey,
    Transaction,
    TransactionType,
)
from ledgerly.services.storage.interface import RemoteStoreInterface, StorageError


logger = structlog.get_logger(__name__)

YearMonth = Union[str, int]


class LedgerCache:
    """
    Working set of loaded months, kept consistent with the remote store.

    The cache and the store are injected into the operations layer; there
    is no module-level instance.
    """

    def __init__(
        self,
        store: RemoteStoreInterface,
        base_path: str = "data",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._base_path = base_path
        self._audit_logger = audit_logger
        self._shards: dict[str, dict[str, MonthShard]] = {}
        self._in_flight: dict[ShardKey, asyncio.Task] = {}

    @property
    def store(self) -> RemoteStoreInterface:
        return self._store

    @property
    def base_path(self) -> str:
        return self._base_path

    def path_for(
        self,
        year: YearMonth,
        month: YearMonth,
        transaction_type: TransactionType,
    ) -> str:
        key = normalize_shard(year, month)
        return shard_path_for(self._base_path, key.year, key.month, transaction_type)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load_shard(self, year: YearMonth, month: YearMonth) -> MonthShard:
        """
        Fetch a month from the repository, coalescing concurrent requests.

        Raises:
            StorageError: If either file cannot be read or parsed
        """
        key = normalize_shard(year, month)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(key))
            self._in_flight[key] = task
            task.add_done_callback(partial(self._finish_load, key))
        else:
            logger.debug("shard_load_coalesced", shard=str(key))

        # A cancelled caller must not cancel the load other callers share
        return await asyncio.shield(task)

    def _finish_load(self, key: ShardKey, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark the error as retrieved; every awaiting caller still gets it
            task.exception()

    async def _fetch(self, key: ShardKey) -> MonthShard:
        income_path = self.path_for(key.year, key.month, TransactionType.INCOME)
        expenses_path = self.path_for(key.year, key.month, TransactionType.EXPENSE)

        try:
            income_file, expenses_file = await asyncio.gather(
                self._store.read_file(income_path, default=[]),
                self._store.read_file(expenses_path, default=[]),
            )
            shard = MonthShard(
                year=key.year,
                month=key.month,
                income=self._parse(income_file),
                expenses=self._parse(expenses_file),
                loaded=True,
            )
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_month_load_failed(str(key), str(e))
            raise

        self._shards.setdefault(key.year, {})[key.month] = shard

        if self._audit_logger:
            self._audit_logger.log_month_loaded(str(key), len(shard.income), len(shard.expenses))
        return shard

    @staticmethod
    def _parse(remote: RemoteFile) -> list[Transaction]:
        content = remote.content if remote.content is not None else []
        if not isinstance(content, list):
            raise StorageError(f"{remote.path} does not hold a list of transactions")
        try:
            return [Transaction.model_validate(item) for item in content]
        except PydanticValidationError as e:
            raise StorageError(f"Malformed transaction in {remote.path}: {e}")

    async def get_shard(self, year: YearMonth, month: YearMonth) -> MonthShard:
        """The cached month if loaded, otherwise load it."""
        shard = self.peek(year, month)
        if shard is not None:
            return shard
        return await self.load_shard(year, month)

    def invalidate(self, year: YearMonth, month: YearMonth) -> None:
        """Force the next get_shard() for this month to re-read the repository."""
        key = normalize_shard(year, month)
        self._in_flight.pop(key, None)
        shard = self._shards.get(key.year, {}).get(key.month)
        if shard is not None:
            shard.loaded = False

    async def refresh(self, year: YearMonth, month: YearMonth) -> MonthShard:
        """Discard the cached month and load it again."""
        self.invalidate(year, month)
        return await self.load_shard(year, month)

    # -------------------------------------------------------------------------
    # Inspection (no I/O)
    # -------------------------------------------------------------------------

    def peek(self, year: YearMonth, month: YearMonth) -> Optional[MonthShard]:
        """The loaded shard, or None if it has not been loaded."""
        key = normalize_shard(year, month)
        shard = self._shards.get(key.year, {}).get(key.month)
        if shard is not None and shard.loaded:
            return shard
        return None

    def is_loaded(self, year: YearMonth, month: YearMonth) -> bool:
        return self.peek(year, month) is not None

    def is_loading(self, year: YearMonth, month: YearMonth) -> bool:
        return normalize_shard(year, month) in self._in_flight

    def loaded_shards(self) -> Iterator[MonthShard]:
        """Loaded shards, in the order they were first loaded."""
        for months in self._shards.values():
            for shard in months.values():
                if shard.loaded:
                    yield shard

    def clear(self) -> None:
        """Forget every loaded month."""
        self._shards.clear()
        self._in_flight.clear()
