"""
Transaction Operations

Add, find, update and delete transactions while keeping the in-memory
cache and the repository files in step.

Every mutation follows the same cycle:
1. Validate (no I/O, nothing changed on failure)
2. Make sure the month is loaded
3. Change the month's sequence in memory and re-sort it, newest first
4. Write the whole sequence back as one file

KNOWN CONSISTENCY GAPS (accepted, not hidden):
- The in-memory change happens before the write is confirmed. If the write
  fails the change is NOT rolled back; the failure is audit-logged and
  re-raised, and a refresh of the month restores the repository's view.
- Moving a transaction to another month writes two files concurrently with
  no joint atomicity. If only one write succeeds the transaction ends up
  duplicated or missing in the repository. This is audit-logged as a
  critical event and the first error is re-raised.
"""

import asyncio
import random
import time
from datetime import datetime, timezone
from typing import Any, Optional, Union

import structlog

from ledgerly.audit import AuditLogger
from ledgerly.ledger.cache import LedgerCache
from ledgerly.ledger.errors import TransactionNotFoundError
from ledgerly.ledger.shards import normalize_shard
from ledgerly.ledger.validator import TransactionValidator
from ledgerly.models.transaction import (
    MonthShard,
    Transaction,
    TransactionInput,
    TransactionLocation,
    TransactionType,
    TransactionUpdate,
)
from ledgerly.services.storage.interface import StorageError


logger = structlog.get_logger(__name__)


def sort_by_date(transactions: list[Transaction]) -> None:
    """Sort in place by date, newest first; equal dates keep their order."""
    transactions.sort(key=lambda t: t.date, reverse=True)


def generate_id(transaction_type: TransactionType, year: str, month: str) -> str:
    """
    New transaction id: {inc|exp}_{year}{month}{epoch millis}{0..9999}.
    """
    timestamp = int(time.time() * 1000)
    suffix = random.randrange(10000)
    return f"{transaction_type.id_prefix}_{year}{month}{timestamp}{suffix}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionService:
    """
    Mutations over the ledger cache.

    The cache (and through it the remote store) is injected, so several
    services can share one working set and tests can use an in-memory store.
    """

    def __init__(
        self,
        cache: LedgerCache,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        currency_symbol: str = "₹",
    ):
        self._cache = cache
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._currency_symbol = currency_symbol

    @property
    def cache(self) -> LedgerCache:
        return self._cache

    async def _persist(
        self,
        shard: MonthShard,
        transaction_type: TransactionType,
        message: str,
        transaction_id: Optional[str] = None,
    ) -> str:
        """Write one of a month's sequences back as a whole file."""
        path = self._cache.path_for(shard.year, shard.month, transaction_type)
        records = [t.to_record() for t in shard.transactions(transaction_type)]
        try:
            return await self._cache.store.write_file(path, records, message)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_write_failed(path, str(e), transaction_id)
            raise

    # -------------------------------------------------------------------------
    # Add
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        data: Union[TransactionInput, dict[str, Any]],
        transaction_type: Union[TransactionType, str],
    ) -> Transaction:
        """
        Validate and store a new transaction in its month.

        Args:
            data: Date, description, amount and optional category
            transaction_type: 'income' or 'expense'

        Returns:
            The stored transaction, with id and timestamps assigned

        Raises:
            TransactionValidationError: If the input is rejected
            ConflictError: If the month file changed on the remote side
            StorageError: On any other storage failure
        """
        transaction_type = TransactionType(transaction_type)
        proposed = self._validator.coerce(data, TransactionInput)
        key = self._validator.validate(proposed)

        shard = await self._cache.get_shard(key.year, key.month)

        now = _utcnow()
        transaction = Transaction(
            id=generate_id(transaction_type, key.year, key.month),
            date=proposed.date,
            description=proposed.description.strip(),
            amount=proposed.amount,
            category=proposed.category or None,
            created_at=now,
            updated_at=now,
        )
        self._validator.validate(transaction, shard.key)

        sequence = shard.transactions(transaction_type)
        sequence.append(transaction)
        sort_by_date(sequence)

        message = (
            f"Add {transaction_type.value}: {transaction.description} "
            f"({self._currency_symbol}{proposed.amount})"
        )
        await self._persist(shard, transaction_type, message, transaction.id)

        if self._audit_logger:
            self._audit_logger.log_transaction_added(
                transaction_id=transaction.id,
                shard=str(key),
                transaction_type=transaction_type.value,
                amount=str(transaction.amount),
            )
        return transaction

    # -------------------------------------------------------------------------
    # Find
    # -------------------------------------------------------------------------

    def find_transaction(
        self,
        transaction_id: str,
        year: Optional[Union[str, int]] = None,
        month: Optional[Union[str, int]] = None,
    ) -> Optional[TransactionLocation]:
        """
        Locate a transaction among the loaded months.

        Months that have not been loaded are not searched. Passing year and
        month restricts the search to that month.
        """
        if year is not None and month is not None:
            shard = self._cache.peek(year, month)
            shards = [shard] if shard is not None else []
        else:
            shards = self._cache.loaded_shards()

        for shard in shards:
            for transaction_type in (TransactionType.INCOME, TransactionType.EXPENSE):
                for index, transaction in enumerate(shard.transactions(transaction_type)):
                    if transaction.id == transaction_id:
                        return TransactionLocation(
                            transaction=transaction,
                            type=transaction_type,
                            year=shard.year,
                            month=shard.month,
                            index=index,
                        )
        return None

    def _require(self, transaction_id: str) -> TransactionLocation:
        found = self.find_transaction(transaction_id)
        if found is None:
            raise TransactionNotFoundError(transaction_id)
        return found

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    async def update_transaction(
        self,
        transaction_id: str,
        updates: Union[TransactionUpdate, dict[str, Any]],
    ) -> Transaction:
        """
        Apply partial changes, moving the transaction if its month changes.

        Raises:
            TransactionNotFoundError: If no loaded month holds the id
            TransactionValidationError: If the result is invalid
            StorageError: If a write fails (see module notes for moves)
        """
        changes = self._validator.coerce(updates, TransactionUpdate)
        found = self._require(transaction_id)
        current = found.transaction
        explicit = changes.model_fields_set

        values: dict[str, Any] = {"date": changes.date or current.date}
        if changes.description and changes.description.strip():
            values["description"] = changes.description.strip()
        if changes.amount is not None:
            values["amount"] = changes.amount
        if "category" in explicit:
            # An empty value removes the category
            values["category"] = changes.category or None

        changed_fields = [
            name for name, value in values.items() if getattr(current, name) != value
        ]
        values["updated_at"] = _utcnow()
        updated = current.model_copy(update=values)

        target = self._validator.validate(updated)

        if target != found.key:
            await self._move(found, updated, target.year, target.month)
        else:
            shard = self._cache.peek(found.year, found.month)
            self._validator.validate(updated, shard.key)
            sequence = shard.transactions(found.type)
            sequence[found.index] = updated
            sort_by_date(sequence)

            message = f"Update {found.type.value}: {updated.description}"
            await self._persist(shard, found.type, message, transaction_id)

            if self._audit_logger:
                self._audit_logger.log_transaction_updated(
                    transaction_id, str(found.key), changed_fields
                )

        return updated

    async def _move(
        self,
        found: TransactionLocation,
        updated: Transaction,
        year: str,
        month: str,
    ) -> None:
        """
        Move a transaction between months.

        The destination is loaded before anything is changed, so a failed
        load leaves both months untouched.
        """
        transaction_type = found.type
        destination = await self._cache.get_shard(year, month)
        self._validator.validate(updated, destination.key)

        source = self._cache.peek(found.year, found.month)
        if source is None:
            raise TransactionNotFoundError(
                updated.id, f"Month {found.key} was unloaded during the move"
            )
        source_sequence = source.transactions(transaction_type)
        # The sequence may have changed while the destination was loading
        index = next(
            (i for i, t in enumerate(source_sequence) if t.id == updated.id),
            None,
        )
        if index is None:
            raise TransactionNotFoundError(updated.id)
        del source_sequence[index]

        destination_sequence = destination.transactions(transaction_type)
        destination_sequence.append(updated)
        sort_by_date(destination_sequence)

        from_shard, to_shard = str(source.key), str(destination.key)
        results = await asyncio.gather(
            self._persist(
                source,
                transaction_type,
                f"Move {transaction_type.value} transaction to {year}/{month}",
                updated.id,
            ),
            self._persist(
                destination,
                transaction_type,
                f"Move {transaction_type.value} transaction from {found.year}/{found.month}",
                updated.id,
            ),
            return_exceptions=True,
        )

        paths = [
            self._cache.path_for(source.year, source.month, transaction_type),
            self._cache.path_for(destination.year, destination.month, transaction_type),
        ]
        failures = [
            (path, result)
            for path, result in zip(paths, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            if self._audit_logger:
                self._audit_logger.log_move_partially_failed(
                    transaction_id=updated.id,
                    from_shard=from_shard,
                    to_shard=to_shard,
                    failed_paths=[path for path, _ in failures],
                    error=str(failures[0][1]),
                )
            raise failures[0][1]

        if self._audit_logger:
            self._audit_logger.log_transaction_moved(updated.id, from_shard, to_shard)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Remove a transaction and rewrite its month file.

        Raises:
            TransactionNotFoundError: If no loaded month holds the id
        """
        found = self._require(transaction_id)
        shard = self._cache.peek(found.year, found.month)
        transaction = found.transaction

        del shard.transactions(found.type)[found.index]

        message = (
            f"Delete {found.type.value}: {transaction.description} "
            f"({self._currency_symbol}{transaction.amount})"
        )
        await self._persist(shard, found.type, message, transaction_id)

        if self._audit_logger:
            self._audit_logger.log_transaction_deleted(transaction_id, str(found.key))
        return True

    # -------------------------------------------------------------------------
    # Month files
    # -------------------------------------------------------------------------

    async def initialize_month(self, year: Union[str, int], month: Union[str, int]) -> list[str]:
        """
        Create empty income and expenses files for a month that has none.

        Returns:
            Paths of the files that were created
        """
        key = normalize_shard(year, month)
        store = self._cache.store
        created = []

        for transaction_type in (TransactionType.INCOME, TransactionType.EXPENSE):
            path = self._cache.path_for(key.year, key.month, transaction_type)
            if await store.exists(path):
                continue
            await store.write_file(
                path,
                [],
                f"Initialize {transaction_type.file_type}.json for {key.year}/{key.month}",
            )
            created.append(path)

        if created and self._audit_logger:
            self._audit_logger.log_month_initialized(str(key), created)
        logger.debug("month_initialized", shard=str(key), created=created)
        return created
