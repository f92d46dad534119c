"""Tests for aggregation queries."""

from decimal import Decimal

import pytest

from ledgerly.ledger import LedgerCache
from ledgerly.models.transaction import (
    ExpenseRatioStatus,
    LedgerEntry,
    ShardKey,
    Transaction,
    TransactionType,
)
from ledgerly.queries import (
    LedgerQueries,
    category_breakdown,
    expense_ratio,
    filter_entries,
    percentage_change,
    sort_entries,
)
from ledgerly.services.storage import InMemoryRemoteStore

from conftest import make_record


def _entry(transaction_id, date, amount, description="x", transaction_type=TransactionType.EXPENSE):
    transaction = Transaction(id=transaction_id, date=date, description=description, amount=amount)
    return LedgerEntry(transaction=transaction, type=transaction_type)


class TestPercentageChange:
    """Tests for relative change."""

    def test_both_zero(self):
        assert percentage_change(0, 0) == 0

    def test_from_zero_is_undefined(self):
        assert percentage_change(0, 50) is None

    def test_increase(self):
        assert percentage_change(100, 150) == 50

    def test_decrease(self):
        assert percentage_change(Decimal("200"), Decimal("50")) == -75


class TestSummary:
    """Tests for monthly totals."""

    def test_unloaded_month_is_zero(self, queries):
        summary = queries.summary("2024", "01")
        assert summary.total_income == 0
        assert summary.total_expenses == 0
        assert summary.balance == 0
        assert summary.transaction_count.income == 0

    @pytest.mark.asyncio
    async def test_loaded_month(self, queries, cache):
        await cache.get_shard("2024", "01")

        summary = queries.summary("2024", "01")

        assert summary.total_income == Decimal("100")
        assert summary.total_expenses == Decimal("40")
        assert summary.balance == Decimal("60")
        assert summary.transaction_count.income == 1
        assert summary.transaction_count.expenses == 1


class TestCombinedView:
    """Tests for the merged, sorted listing."""

    @pytest.mark.asyncio
    async def test_sorted_newest_first(self):
        store = InMemoryRemoteStore({
            "data/2024/01/income.json": [make_record("inc_1", "2024-01-05", 10)],
            "data/2024/01/expenses.json": [
                make_record("exp_1", "2024-01-20", 5),
                make_record("exp_2", "2024-01-01", 5),
            ],
        })
        cache = LedgerCache(store, "data")
        await cache.get_shard("2024", "01")

        view = LedgerQueries(cache).combined_view("2024", "01")

        assert [e.transaction.date for e in view] == ["2024-01-20", "2024-01-05", "2024-01-01"]
        assert view[1].type is TransactionType.INCOME

    def test_unloaded_is_empty(self, queries):
        assert queries.combined_view("2024", "01") == []


class TestEntryHelpers:
    """Tests for sorting, filtering and grouping helpers."""

    def test_sort_by_amount_ascending(self):
        entries = [_entry("a", "2024-01-01", 30), _entry("b", "2024-01-02", 10)]
        assert [e.transaction.id for e in sort_entries(entries, "amount", descending=False)] == ["b", "a"]

    def test_sort_by_description_ignores_case(self):
        entries = [_entry("a", "2024-01-01", 1, "banana"), _entry("b", "2024-01-01", 1, "Apple")]
        assert [e.transaction.id for e in sort_entries(entries, "description", descending=False)] == ["b", "a"]

    def test_sort_is_stable_for_equal_dates(self):
        entries = [_entry("a", "2024-01-01", 1), _entry("b", "2024-01-01", 2)]
        assert [e.transaction.id for e in sort_entries(entries)] == ["a", "b"]

    def test_sort_rejects_unknown_field(self):
        with pytest.raises(ValueError):
            sort_entries([], "category")

    def test_filter_entries(self):
        entries = [
            _entry("a", "2024-01-01", 1, transaction_type=TransactionType.INCOME),
            _entry("b", "2024-01-01", 1),
        ]
        assert [e.transaction.id for e in filter_entries(entries, "income")] == ["a"]
        assert len(filter_entries(entries, "both")) == 2

    def test_category_breakdown(self):
        transactions = [
            Transaction(id="1", date="2024-01-01", description="a", amount=10, category="Food"),
            Transaction(id="2", date="2024-01-01", description="b", amount=50),
            Transaction(id="3", date="2024-01-01", description="c", amount=15, category="Food"),
        ]
        assert category_breakdown(transactions) == [
            ("Uncategorized", Decimal("50")),
            ("Food", Decimal("25")),
        ]

    @pytest.mark.parametrize(
        "income, expenses, status",
        [
            (100, 50, ExpenseRatioStatus.HEALTHY),
            (100, 80, ExpenseRatioStatus.MODERATE),
            (100, 81, ExpenseRatioStatus.RISKY),
            (0, 10, ExpenseRatioStatus.NO_INCOME),
        ],
    )
    def test_expense_ratio(self, income, expenses, status):
        assert expense_ratio(income, expenses).status is status


class TestRollingAverage:
    """Tests for multi-month statistics."""

    @pytest.fixture
    def three_months(self):
        return InMemoryRemoteStore({
            "data/2024/03/income.json": [make_record("i3", "2024-03-01", 300)],
            "data/2024/03/expenses.json": [make_record("e3", "2024-03-01", 90)],
            "data/2024/02/income.json": [make_record("i2", "2024-02-01", 100)],
            "data/2024/02/expenses.json": [make_record("e2", "2024-02-01", 30)],
            "data/2024/01/income.json": [make_record("i1", "2024-01-01", 200)],
            "data/2024/01/expenses.json": [make_record("e1", "2024-01-01", 60)],
        })

    @pytest.mark.asyncio
    async def test_average_over_all_months(self, three_months):
        queries = LedgerQueries(LedgerCache(three_months, "data"))

        result = await queries.rolling_average("2024", "03", 3)

        assert result.months_used == 3
        assert result.average_income == Decimal("200")
        assert result.average_expenses == Decimal("60")
        assert result.daily_burn_rate == Decimal("2")

    @pytest.mark.asyncio
    async def test_failed_month_is_skipped(self, three_months):
        """Test that the divisor is the number of months actually loaded."""
        three_months.fail("data/2024/02/income.json")
        queries = LedgerQueries(LedgerCache(three_months, "data"))

        result = await queries.rolling_average("2024", "03", 3)

        assert result.months_requested == 3
        assert result.months_used == 2
        assert result.months == [ShardKey("2024", "03"), ShardKey("2024", "01")]
        assert result.average_income == Decimal("250")
        assert result.average_expenses == Decimal("75")

    @pytest.mark.asyncio
    async def test_undecodable_month_is_skipped(self, three_months):
        three_months.seed_raw("data/2024/02/income.json", b"\xff\xfe[]")
        queries = LedgerQueries(LedgerCache(three_months, "data"))

        result = await queries.rolling_average("2024", "03", 2)

        assert result.months_used == 1
        assert result.months == [ShardKey("2024", "03")]
        assert result.average_income == Decimal("300")

    @pytest.mark.asyncio
    async def test_all_months_failing(self):
        store = InMemoryRemoteStore()
        for month in ("01", "02"):
            store.fail(f"data/2024/{month}/income.json")
        result = await LedgerQueries(LedgerCache(store, "data")).rolling_average(2024, 2, 2)
        assert result.months_used == 0
        assert result.average_income == 0


class TestMonthComparison:
    """Tests for month-over-month change."""

    @pytest.mark.asyncio
    async def test_compares_with_previous_month(self):
        store = InMemoryRemoteStore({
            "data/2024/01/income.json": [make_record("i1", "2024-01-01", 100)],
            "data/2024/01/expenses.json": [make_record("e1", "2024-01-01", 50)],
            "data/2023/12/income.json": [make_record("i0", "2023-12-01", 100)],
        })
        cache = LedgerCache(store, "data")
        await cache.get_shard("2024", "01")

        comparison = await LedgerQueries(cache).month_comparison("2024", "01")

        assert comparison.previous_year == "2023"
        assert comparison.previous_month == "12"
        assert comparison.income_change == 0
        assert comparison.expense_change is None

    @pytest.mark.asyncio
    async def test_unavailable_previous_month(self, cache, store):
        store.fail("data/2023/12/income.json")
        await cache.get_shard("2024", "01")

        comparison = await LedgerQueries(cache).month_comparison("2024", "01")

        assert comparison.available is False
        assert comparison.income_change is None

    @pytest.mark.asyncio
    async def test_undecodable_previous_month(self, cache, store):
        store.seed_raw("data/2023/12/expenses.json", b"\xff\xfe[]")
        await cache.get_shard("2024", "01")

        comparison = await LedgerQueries(cache).month_comparison("2024", "01")

        assert comparison.available is False
