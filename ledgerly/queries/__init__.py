"""Query package - read-only aggregations over the ledger cache."""

from ledgerly.queries.aggregations import (
    UNCATEGORIZED,
    LedgerQueries,
    category_breakdown,
    expense_ratio,
    filter_entries,
    percentage_change,
    sort_entries,
)

__all__ = [
    "UNCATEGORIZED",
    "LedgerQueries",
    "category_breakdown",
    "expense_ratio",
    "filter_entries",
    "percentage_change",
    "sort_entries",
]
