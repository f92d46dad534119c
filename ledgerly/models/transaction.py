"""
Core Data Models for Ledgerly

These models define the schemas for everything the data manager stores in,
or reads back from, the GitHub repository. They are designed to:
1. Enforce type safety at runtime
2. Serialize to exactly the JSON layout of the ledger files
3. Give the UI layer typed results instead of loose dictionaries

DESIGN DECISION: Stored records are parsed leniently (files may have been
edited by hand), while user input is checked by the ledger validator so that
every rejection names the offending field.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Kind of transaction.

    Each type lives in its own file inside a month folder.
    """
    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def _missing_(cls, value: object) -> Optional["TransactionType"]:
        # The file name for expenses is plural; accept it as an alias.
        if isinstance(value, str) and value.strip().lower() == "expenses":
            return cls.EXPENSE
        return None

    @property
    def file_type(self) -> str:
        """Name of the JSON file (without extension) holding this type."""
        return "income" if self is TransactionType.INCOME else "expenses"

    @property
    def id_prefix(self) -> str:
        return "inc" if self is TransactionType.INCOME else "exp"


class ExpenseRatioStatus(str, Enum):
    """How healthy a month's spending is relative to its income."""
    HEALTHY = "healthy"      # expenses <= 50% of income
    MODERATE = "moderate"    # expenses <= 80% of income
    RISKY = "risky"          # expenses above 80% of income
    NO_INCOME = "no_income"  # ratio undefined


class ShardKey(NamedTuple):
    """(year, month) pair identifying a month shard, e.g. ('2024', '01')."""
    year: str
    month: str

    def __str__(self) -> str:
        return f"{self.year}-{self.month}"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A stored income or expense entry.

    Serialized with camelCase timestamps, as a JSON number for the amount,
    and with `category` left out entirely when there is none.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Generated identifier, immutable after creation"
    )
    date: str = Field(
        ...,
        description="Calendar date as YYYY-MM-DD"
    )
    description: str = Field(
        ...,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        description="Positive amount"
    )
    category: Optional[str] = Field(
        default=None,
        description="Optional category name"
    )
    created_at: Optional[datetime] = Field(
        default=None,
        alias="createdAt",
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        alias="updatedAt",
    )

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> Union[int, float]:
        if amount == amount.to_integral_value():
            return int(amount)
        return float(amount)

    def to_record(self) -> dict[str, Any]:
        """Convert to the JSON object written into a month file."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionInput(BaseModel):
    """
    A proposed new transaction, as entered by the user.

    Everything is optional here so that missing values reach the validator
    and are reported by field name.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    date: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None


class TransactionUpdate(BaseModel):
    """
    Partial changes to an existing transaction.

    Only fields that were explicitly set are applied. Setting `category` to
    an empty string or None removes the category.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    date: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None


# =============================================================================
# STORAGE MODELS
# =============================================================================

class MonthShard(BaseModel):
    """
    One month of ledger data: the income and expense sequences.

    Owned by the ledger cache. Both sequences are kept sorted by date,
    newest first.
    """

    year: str
    month: str
    income: list[Transaction] = Field(default_factory=list)
    expenses: list[Transaction] = Field(default_factory=list)
    loaded: bool = False

    @property
    def key(self) -> ShardKey:
        return ShardKey(self.year, self.month)

    def transactions(self, transaction_type: TransactionType) -> list[Transaction]:
        """The live sequence for a type (mutations affect the shard)."""
        if transaction_type is TransactionType.INCOME:
            return self.income
        return self.expenses


class CategoryIndex(BaseModel):
    """Category names per transaction type, stored in category.json."""

    income: list[str] = Field(default_factory=list)
    expenses: list[str] = Field(default_factory=list)

    def names(self, transaction_type: TransactionType) -> list[str]:
        if transaction_type is TransactionType.INCOME:
            return self.income
        return self.expenses

    def contains(self, name: str, transaction_type: TransactionType) -> bool:
        """Case-insensitive membership test."""
        wanted = name.strip().casefold()
        return any(
            existing.casefold() == wanted
            for existing in self.names(transaction_type)
        )

    def to_record(self) -> dict[str, list[str]]:
        return {
            "income": sorted(self.income, key=str.casefold),
            "expenses": sorted(self.expenses, key=str.casefold),
        }


class RemoteFile(BaseModel):
    """
    A file as read from the remote store.

    `sha` is the server-assigned version tag, None when the file is absent.
    """

    path: str
    content: Any = None
    sha: Optional[str] = None
    exists: bool = False


# =============================================================================
# QUERY RESULT MODELS
# =============================================================================

class TransactionLocation(BaseModel):
    """Where a transaction currently lives in the cache."""

    transaction: Transaction
    type: TransactionType
    year: str
    month: str
    index: int = Field(ge=0)

    @property
    def key(self) -> ShardKey:
        return ShardKey(self.year, self.month)


class LedgerEntry(BaseModel):
    """A transaction tagged with its type, for combined listings."""

    transaction: Transaction
    type: TransactionType


class TransactionCount(BaseModel):
    income: int = 0
    expenses: int = 0


class MonthlySummary(BaseModel):
    """Totals for one month."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    transaction_count: TransactionCount = Field(default_factory=TransactionCount)


class RollingAverage(BaseModel):
    """
    Averages over the trailing months that could actually be loaded.

    `months_used` may be smaller than the requested window.
    """

    average_income: Decimal = Decimal("0")
    average_expenses: Decimal = Decimal("0")
    daily_burn_rate: Decimal = Decimal("0")
    months_requested: int = Field(ge=1)
    months_used: int = Field(default=0, ge=0)
    months: list[ShardKey] = Field(default_factory=list)


class MonthComparison(BaseModel):
    """
    Percentage change of a month against the month before it.

    A change of None means it cannot be expressed as a percentage.
    """

    year: str
    month: str
    previous_year: str
    previous_month: str
    available: bool = True
    income_change: Optional[float] = None
    expense_change: Optional[float] = None


class ExpenseRatio(BaseModel):
    """Expenses as a percentage of income."""

    ratio: Optional[float] = None
    status: ExpenseRatioStatus
