"""Tests for month shard paths and date handling."""

import pytest

from ledgerly.ledger import (
    TransactionValidationError,
    TransactionValidator,
    category_path,
    normalize_shard,
    previous_month,
    shard_of,
    shard_path_for,
    trailing_months,
)
from ledgerly.models.transaction import ShardKey, TransactionInput, TransactionType


class TestShardResolver:
    """Tests for the pure path and date mapping."""

    def test_shard_path_for_file_types(self):
        assert shard_path_for("data", "2024", "01", "income") == "data/2024/01/income.json"
        assert shard_path_for("data", "2024", "01", TransactionType.EXPENSE) == "data/2024/01/expenses.json"

    def test_shard_path_for_empty_base(self):
        """Test that an empty base path puts months at the repository root."""
        assert shard_path_for("", "2024", "12", "income") == "2024/12/income.json"

    def test_category_path(self):
        assert category_path("data") == "data/category.json"
        assert category_path("/ledger/") == "ledger/category.json"

    def test_shard_of_valid_date(self):
        assert shard_of("2024-03-15") == ShardKey("2024", "03")

    @pytest.mark.parametrize("value", ["2024-3-15", "15/03/2024", "", "2024-03-15T00:00"])
    def test_shard_of_rejects_bad_format(self, value):
        """Test that anything but YYYY-MM-DD is a validation error."""
        with pytest.raises(TransactionValidationError) as exc_info:
            shard_of(value)
        assert exc_info.value.field == "date"

    def test_normalize_shard_pads(self):
        assert normalize_shard(2024, 3) == ShardKey("2024", "03")
        assert normalize_shard("2024", "11") == ShardKey("2024", "11")

    def test_normalize_shard_rejects_month_13(self):
        with pytest.raises(TransactionValidationError):
            normalize_shard(2024, 13)

    def test_previous_month_crosses_year(self):
        assert previous_month("2024", "01") == ShardKey("2023", "12")
        assert previous_month("2024", "07") == ShardKey("2024", "06")

    def test_trailing_months_current_first(self):
        """Test that the window ends at the given month and walks back."""
        assert trailing_months(2024, 2, 3) == [
            ShardKey("2024", "02"),
            ShardKey("2024", "01"),
            ShardKey("2023", "12"),
        ]


class TestTransactionValidator:
    """Tests for input validation."""

    def setup_method(self):
        self.validator = TransactionValidator()

    def _input(self, **overrides):
        data = {"date": "2024-01-10", "description": "Lunch", "amount": "12.50"}
        data.update(overrides)
        return self.validator.coerce(data, TransactionInput)

    def test_valid_input_returns_shard(self):
        assert self.validator.validate(self._input()) == ShardKey("2024", "01")

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"date": ""}, "date"),
            ({"description": "   "}, "description"),
            ({"amount": None}, "amount"),
            ({"amount": "0"}, "amount"),
            ({"amount": "-5"}, "amount"),
            ({"date": "2024/01/10"}, "date"),
            ({"date": "2024-02-30"}, "date"),
        ],
    )
    def test_rejections_name_the_field(self, overrides, field):
        """Test that each failing check reports its field."""
        with pytest.raises(TransactionValidationError) as exc_info:
            self.validator.validate(self._input(**overrides))
        assert exc_info.value.field == field

    def test_target_shard_mismatch(self):
        """Test that a date outside the target month is rejected."""
        with pytest.raises(TransactionValidationError) as exc_info:
            self.validator.validate(self._input(), target=ShardKey("2024", "02"))
        assert exc_info.value.field == "date"

    def test_coerce_reports_type_errors_by_field(self):
        """Test that a non-numeric amount is a validation error on 'amount'."""
        with pytest.raises(TransactionValidationError) as exc_info:
            self.validator.coerce({"amount": "lots"}, TransactionInput)
        assert exc_info.value.field == "amount"
