"""
Data Models Package

This package contains all Pydantic models used by Ledgerly.
Everything written to or read from the repository conforms to these schemas.
"""

from ledgerly.models.transaction import (
    CategoryIndex,
    ExpenseRatio,
    ExpenseRatioStatus,
    LedgerEntry,
    MonthComparison,
    MonthlySummary,
    MonthShard,
    RemoteFile,
    RollingAverage,
    ShardKey,
    Transaction,
    TransactionCount,
    TransactionInput,
    TransactionLocation,
    TransactionType,
    TransactionUpdate,
)
from ledgerly.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategoryIndex",
    "ExpenseRatio",
    "ExpenseRatioStatus",
    "LedgerEntry",
    "MonthComparison",
    "MonthlySummary",
    "MonthShard",
    "RemoteFile",
    "RollingAverage",
    "ShardKey",
    "Transaction",
    "TransactionCount",
    "TransactionInput",
    "TransactionLocation",
    "TransactionType",
    "TransactionUpdate",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
