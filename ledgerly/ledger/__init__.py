"""
Ledger Package

The file-backed data manager: shard paths, the in-memory cache,
validation, transaction operations and the category registry.
"""

from ledgerly.ledger.cache import LedgerCache
from ledgerly.ledger.categories import CategoryRegistry
from ledgerly.ledger.errors import (
    LedgerError,
    TransactionNotFoundError,
    TransactionValidationError,
)
from ledgerly.ledger.operations import TransactionService, generate_id, sort_by_date
from ledgerly.ledger.shards import (
    category_path,
    normalize_shard,
    previous_month,
    shard_of,
    shard_path_for,
    trailing_months,
)
from ledgerly.ledger.validator import TransactionValidator

__all__ = [
    # Cache
    "LedgerCache",
    # Operations
    "CategoryRegistry",
    "TransactionService",
    "TransactionValidator",
    "generate_id",
    "sort_by_date",
    # Shards
    "category_path",
    "normalize_shard",
    "previous_month",
    "shard_of",
    "shard_path_for",
    "trailing_months",
    # Errors
    "LedgerError",
    "TransactionNotFoundError",
    "TransactionValidationError",
]
