"""
Transaction Validation

DESIGN DECISION: Validation runs before any I/O and stops at the first
problem, raising a TransactionValidationError that names the field.
Nothing is written, and nothing in memory changes, when it fails.

The critical check is the last one: the date's month must equal the month
the transaction is about to be stored under. A transaction filed under the
wrong month file would be invisible to every query for its real month.

IMPORTANT: Validation NEVER silently fixes issues.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ledgerly.ledger.errors import TransactionValidationError
from ledgerly.ledger.shards import shard_of
from ledgerly.models.transaction import ShardKey


ModelT = TypeVar("ModelT", bound=BaseModel)


class TransactionLike(Protocol):
    date: Optional[str]
    description: Optional[str]
    amount: Optional[Decimal]


class TransactionValidator:
    """
    Checks proposed and edited transactions.

    Order of checks:
    1. date, description and amount are present
    2. amount is strictly positive
    3. date matches YYYY-MM-DD and is a real calendar date
    4. the date's shard equals the target shard
    """

    def coerce(self, data: Union[ModelT, dict[str, Any]], model: type[ModelT]) -> ModelT:
        """
        Turn raw input into `model`, reporting type errors by field.

        Model instances pass through unchanged.
        """
        if isinstance(data, model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or "input"
            raise TransactionValidationError(field, first.get("msg", "Invalid value"))

    def validate(
        self,
        candidate: TransactionLike,
        target: Optional[ShardKey] = None,
    ) -> ShardKey:
        """
        Validate a transaction against the shard it will be stored in.

        Args:
            candidate: Proposed or updated transaction
            target: Shard the caller intends to store it under. When None,
                    the shard is derived from the date.

        Returns:
            The shard the transaction belongs to

        Raises:
            TransactionValidationError: On the first failing check
        """
        if not candidate.date:
            raise TransactionValidationError("date", "Date is required")
        if not candidate.description or not candidate.description.strip():
            raise TransactionValidationError("description", "Description is required")
        if candidate.amount is None:
            raise TransactionValidationError("amount", "Amount is required")

        amount = Decimal(candidate.amount)
        if not amount.is_finite() or amount <= 0:
            raise TransactionValidationError("amount", "Amount must be a positive number")

        shard = shard_of(candidate.date)
        try:
            date.fromisoformat(candidate.date)
        except ValueError:
            raise TransactionValidationError("date", f"{candidate.date} is not a calendar date")

        if target is not None and shard != target:
            raise TransactionValidationError(
                "date",
                f"Transaction date must be in {target.year}-{target.month}",
            )

        return shard
