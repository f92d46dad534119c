"""Errors raised by the ledger itself (as opposed to the remote store)."""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class TransactionValidationError(LedgerError, ValueError):
    """
    Input rejected before any I/O.

    `field` names the offending field ('date', 'description', 'amount',
    'category', ...).
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class TransactionNotFoundError(LedgerError, LookupError):
    """No loaded month holds a transaction with this id."""

    def __init__(self, transaction_id: str, message: Optional[str] = None):
        self.transaction_id = transaction_id
        super().__init__(message or f"Transaction not found: {transaction_id}")
