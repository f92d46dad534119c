"""
Month Shard Resolver

Pure mapping between calendar dates and file locations:

    {base_path}/{year}/{month}/income.json
    {base_path}/{year}/{month}/expenses.json
    {base_path}/category.json
"""

import re
from typing import Union

from ledgerly.ledger.errors import TransactionValidationError
from ledgerly.models.transaction import ShardKey, TransactionType


DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CATEGORY_FILE = "category.json"


def _join(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts if part and part.strip("/"))


def shard_path_for(
    base_path: str,
    year: str,
    month: str,
    file_type: Union[str, TransactionType],
) -> str:
    """Repository path of one month's income or expenses file."""
    if isinstance(file_type, TransactionType):
        file_type = file_type.file_type
    return _join(base_path, year, month, f"{file_type}.json")


def category_path(base_path: str) -> str:
    return _join(base_path, CATEGORY_FILE)


def shard_of(date_string: str) -> ShardKey:
    """
    Split a YYYY-MM-DD date into its (year, month) shard.

    Raises:
        TransactionValidationError: If the date does not match the pattern
    """
    if not isinstance(date_string, str) or not DATE_PATTERN.match(date_string):
        raise TransactionValidationError("date", "Invalid date format. Use YYYY-MM-DD")
    year, month, _ = date_string.split("-")
    return ShardKey(year, month)


def normalize_shard(year: Union[str, int], month: Union[str, int]) -> ShardKey:
    """
    Canonical shard key: four-digit year, zero-padded month.

    Accepts ints or strings, e.g. (2024, 3) -> ('2024', '03').
    """
    try:
        year_number = int(year)
        month_number = int(month)
    except (TypeError, ValueError):
        raise TransactionValidationError("month", f"Invalid month: {year}-{month}")
    if not 1 <= month_number <= 12 or not 0 < year_number <= 9999:
        raise TransactionValidationError("month", f"Invalid month: {year}-{month}")
    return ShardKey(f"{year_number:04d}", f"{month_number:02d}")


def previous_month(year: Union[str, int], month: Union[str, int]) -> ShardKey:
    key = normalize_shard(year, month)
    year_number, month_number = int(key.year), int(key.month)
    if month_number == 1:
        return normalize_shard(year_number - 1, 12)
    return normalize_shard(year_number, month_number - 1)


def trailing_months(year: Union[str, int], month: Union[str, int], count: int) -> list[ShardKey]:
    """The `count` months ending at (year, month), current month first."""
    if count < 1:
        raise TransactionValidationError("months", "At least one month is required")
    months = [normalize_shard(year, month)]
    while len(months) < count:
        months.append(previous_month(*months[-1]))
    return months
