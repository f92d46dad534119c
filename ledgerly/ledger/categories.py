"""
Category Registry

The category index is a single file, independent of the month shards:

    {base_path}/category.json -> {"income": [...], "expenses": [...]}

Names are deduplicated case-insensitively and written sorted.

DESIGN DECISION: Unlike transaction writes, a failed category write IS
rolled back in memory. The index is tiny and the UI offers the list in
forms, so it must not show a category that does not exist remotely.
"""

from typing import Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from ledgerly.audit import AuditLogger
from ledgerly.ledger.errors import TransactionValidationError
from ledgerly.ledger.shards import category_path
from ledgerly.models.transaction import CategoryIndex, TransactionType
from ledgerly.services.storage.interface import (
    AuthenticationError,
    DuplicateError,
    RemoteStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class CategoryRegistry:
    """In-memory copy of the category index plus its write path."""

    def __init__(
        self,
        store: RemoteStoreInterface,
        base_path: str = "data",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._path = category_path(base_path)
        self._audit_logger = audit_logger
        self._index = CategoryIndex()

    @property
    def path(self) -> str:
        return self._path

    @property
    def index(self) -> CategoryIndex:
        return self._index

    async def load(self) -> CategoryIndex:
        """
        Read the category index.

        A missing file yields empty lists. A file that cannot be read or
        parsed is treated the same way and logged, so a damaged index never
        blocks the ledger. Authentication failures still propagate.
        """
        try:
            remote = await self._store.read_file(self._path, default={})
        except AuthenticationError:
            raise
        except StorageError as e:
            logger.warning("category_index_unreadable", path=self._path, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_error("category_load_failed", str(e), {"path": self._path})
            self._index = CategoryIndex()
            return self._index

        content = remote.content or {}
        try:
            self._index = CategoryIndex.model_validate(content)
        except PydanticValidationError as e:
            logger.warning("category_index_unreadable", path=self._path, error=str(e))
            self._index = CategoryIndex()
        return self._index

    def names(self, transaction_type: Union[TransactionType, str]) -> list[str]:
        """Current category names for a type (a copy)."""
        return list(self._index.names(TransactionType(transaction_type)))

    async def add(self, name: str, transaction_type: Union[TransactionType, str]) -> str:
        """
        Add a category and write the whole index back.

        Returns:
            The stored (trimmed) name

        Raises:
            TransactionValidationError: If the name is blank
            DuplicateError: If the name exists, ignoring case
            StorageError: If the write fails (the insert is rolled back)
        """
        transaction_type = TransactionType(transaction_type)
        name = (name or "").strip()
        if not name:
            raise TransactionValidationError("category", "Category name is required")
        if self._index.contains(name, transaction_type):
            raise DuplicateError(
                f"Category '{name}' already exists for {transaction_type.value}"
            )

        names = self._index.names(transaction_type)
        names.append(name)
        names.sort(key=str.casefold)

        try:
            await self._store.write_file(
                self._path,
                self._index.to_record(),
                f"Add new {transaction_type.value} category: {name}",
            )
        except StorageError:
            names.remove(name)
            raise

        if self._audit_logger:
            self._audit_logger.log_category_added(name, transaction_type.value)
        return name
