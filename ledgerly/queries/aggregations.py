"""
Aggregation Queries

DESIGN DECISION: Queries are READ-ONLY over the ledger cache.
They never write, and apart from rolling averages and comparisons (which
may load months) they never touch the remote store.

A month that has not been loaded is treated as empty: its summary is all
zeros and its combined view is an empty list.
"""

import asyncio
from decimal import Decimal
from typing import Iterable, Optional, Union

import structlog

from ledgerly.ledger.cache import LedgerCache
from ledgerly.ledger.shards import normalize_shard, previous_month, trailing_months
from ledgerly.models.transaction import (
    ExpenseRatio,
    ExpenseRatioStatus,
    LedgerEntry,
    MonthComparison,
    MonthlySummary,
    RollingAverage,
    Transaction,
    TransactionCount,
    TransactionType,
)
from ledgerly.services.storage.interface import StorageError


logger = structlog.get_logger(__name__)

UNCATEGORIZED = "Uncategorized"
SORT_FIELDS = ("date", "amount", "description")

Number = Union[Decimal, int, float]


def percentage_change(old_value: Number, new_value: Number) -> Optional[float]:
    """
    Relative change from old to new, in percent.

    Returns 0 when both are zero and None when only the old value is zero
    (the change is unbounded).
    """
    old_value, new_value = Decimal(str(old_value)), Decimal(str(new_value))
    if old_value == 0:
        return 0.0 if new_value == 0 else None
    return float((new_value - old_value) / old_value * 100)


def expense_ratio(total_income: Number, total_expenses: Number) -> ExpenseRatio:
    """Expenses as a share of income, with a health status."""
    total_income = Decimal(str(total_income))
    if total_income <= 0:
        return ExpenseRatio(ratio=None, status=ExpenseRatioStatus.NO_INCOME)

    ratio = float(Decimal(str(total_expenses)) / total_income * 100)
    if ratio <= 50:
        status = ExpenseRatioStatus.HEALTHY
    elif ratio <= 80:
        status = ExpenseRatioStatus.MODERATE
    else:
        status = ExpenseRatioStatus.RISKY
    return ExpenseRatio(ratio=ratio, status=status)


def category_breakdown(transactions: Iterable[Transaction]) -> list[tuple[str, Decimal]]:
    """
    Total amount per category, largest first.

    Transactions without a category are grouped under 'Uncategorized'.
    """
    totals: dict[str, Decimal] = {}
    for transaction in transactions:
        category = transaction.category or UNCATEGORIZED
        totals[category] = totals.get(category, Decimal("0")) + transaction.amount
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def sort_entries(
    entries: Iterable[LedgerEntry],
    sort_by: str = "date",
    descending: bool = True,
) -> list[LedgerEntry]:
    """Stable sort by date, amount or description (case-insensitive)."""
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by {sort_by!r}; use one of {SORT_FIELDS}")

    if sort_by == "description":
        def key(entry: LedgerEntry):
            return entry.transaction.description.casefold()
    else:
        def key(entry: LedgerEntry):
            return getattr(entry.transaction, sort_by)
    return sorted(entries, key=key, reverse=descending)


def filter_entries(
    entries: Iterable[LedgerEntry],
    transaction_type: Optional[Union[TransactionType, str]] = None,
) -> list[LedgerEntry]:
    """Keep one type of entry; None (or 'both') keeps everything."""
    if transaction_type is None or transaction_type == "both":
        return list(entries)
    transaction_type = TransactionType(transaction_type)
    return [entry for entry in entries if entry.type is transaction_type]


class LedgerQueries:
    """
    Summaries and statistics derived from the ledger cache.

    GUARANTEES:
    - Only reports amounts actually held in loaded months
    - Averages divide by the months that were obtained, never by the window
    """

    def __init__(
        self,
        cache: LedgerCache,
        rolling_window: int = 3,
        burn_rate_days: int = 30,
    ):
        self._cache = cache
        self._rolling_window = rolling_window
        self._burn_rate_days = burn_rate_days

    def summary(self, year: Union[str, int], month: Union[str, int]) -> MonthlySummary:
        """Totals, balance and counts for one month (zeros if not loaded)."""
        shard = self._cache.peek(year, month)
        if shard is None:
            return MonthlySummary()

        total_income = sum((t.amount for t in shard.income), Decimal("0"))
        total_expenses = sum((t.amount for t in shard.expenses), Decimal("0"))
        return MonthlySummary(
            total_income=total_income,
            total_expenses=total_expenses,
            balance=total_income - total_expenses,
            transaction_count=TransactionCount(
                income=len(shard.income),
                expenses=len(shard.expenses),
            ),
        )

    def combined_view(self, year: Union[str, int], month: Union[str, int]) -> list[LedgerEntry]:
        """Income and expenses of a month together, newest first."""
        shard = self._cache.peek(year, month)
        if shard is None:
            return []

        entries = [
            LedgerEntry(transaction=t, type=TransactionType.INCOME) for t in shard.income
        ] + [
            LedgerEntry(transaction=t, type=TransactionType.EXPENSE) for t in shard.expenses
        ]
        return sort_entries(entries, "date", descending=True)

    async def rolling_average(
        self,
        year: Union[str, int],
        month: Union[str, int],
        months: Optional[int] = None,
    ) -> RollingAverage:
        """
        Average monthly income and expenses over the trailing months.

        Months are loaded concurrently. A month that fails to load is
        skipped; the calculation continues with the rest.
        """
        window = months or self._rolling_window
        keys = trailing_months(year, month, window)

        results = await asyncio.gather(
            *(self._cache.get_shard(key.year, key.month) for key in keys),
            return_exceptions=True,
        )

        used = []
        total_income = Decimal("0")
        total_expenses = Decimal("0")
        for key, result in zip(keys, results):
            if isinstance(result, StorageError):
                logger.warning("rolling_average_month_skipped", shard=str(key), error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result
            total_income += sum((t.amount for t in result.income), Decimal("0"))
            total_expenses += sum((t.amount for t in result.expenses), Decimal("0"))
            used.append(key)

        if not used:
            return RollingAverage(months_requested=window)

        average_expenses = total_expenses / len(used)
        return RollingAverage(
            average_income=total_income / len(used),
            average_expenses=average_expenses,
            daily_burn_rate=average_expenses / self._burn_rate_days,
            months_requested=window,
            months_used=len(used),
            months=used,
        )

    async def month_comparison(
        self,
        year: Union[str, int],
        month: Union[str, int],
    ) -> MonthComparison:
        """
        Compare a loaded month with the month before it.

        The previous month is loaded if needed. If it cannot be loaded the
        comparison is marked unavailable instead of failing.
        """
        key = normalize_shard(year, month)
        previous = previous_month(key.year, key.month)
        comparison = MonthComparison(
            year=key.year,
            month=key.month,
            previous_year=previous.year,
            previous_month=previous.month,
        )

        try:
            await self._cache.get_shard(previous.year, previous.month)
        except StorageError as e:
            logger.warning("month_comparison_unavailable", shard=str(previous), error=str(e))
            comparison.available = False
            return comparison

        current_summary = self.summary(key.year, key.month)
        previous_summary = self.summary(previous.year, previous.month)
        comparison.income_change = percentage_change(
            previous_summary.total_income, current_summary.total_income
        )
        comparison.expense_change = percentage_change(
            previous_summary.total_expenses, current_summary.total_expenses
        )
        return comparison
