"""
Audit Models for Ledgerly

Every change the data manager pushes to the repository is logged.
This provides:
1. Traceability of what was written, where, and at which version
2. Debugging information when a write fails half-way (e.g. a move)
3. A record of authentication attempts

DESIGN DECISION: Audit events are only emitted, never stored or edited.
The git history of the ledger repository is the durable record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ledger reads
    MONTH_LOADED = "month_loaded"
    MONTH_LOAD_FAILED = "month_load_failed"
    MONTH_REFRESHED = "month_refreshed"
    MONTH_INITIALIZED = "month_initialized"

    # Transaction writes
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_MOVED = "transaction_moved"
    TRANSACTION_DELETED = "transaction_deleted"
    WRITE_FAILED = "write_failed"
    MOVE_PARTIALLY_FAILED = "move_partially_failed"

    # Categories
    CATEGORY_ADDED = "category_added"

    # Authentication
    TOKEN_ACCEPTED = "token_accepted"
    TOKEN_REJECTED = "token_rejected"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    `entity_id` is the transaction id when the event is about one
    transaction; `shard` is the month it touched, as 'YYYY-MM'.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category', 'token')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    shard: Optional[str] = Field(
        default=None,
        description="Month shard involved, as YYYY-MM"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "shard": self.shard,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, "2024-01", "income", "100")
        event = AuditEventBuilder.write_failed(path, error)
    """

    @staticmethod
    def month_loaded(
        shard: str,
        income_count: int,
        expense_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_LOADED,
            entity_type="shard",
            shard=shard,
            description=f"Loaded {shard}: {income_count} income, {expense_count} expenses",
            details={
                "income_count": income_count,
                "expense_count": expense_count,
            },
            severity=AuditSeverity.DEBUG,
        )

    @staticmethod
    def month_load_failed(shard: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="shard",
            shard=shard,
            description=f"Could not load {shard}",
            error_message=error,
        )

    @staticmethod
    def month_refreshed(shard: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_REFRESHED,
            entity_type="shard",
            shard=shard,
            description=f"Reloaded {shard} from the repository",
        )

    @staticmethod
    def month_initialized(shard: str, created: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_INITIALIZED,
            entity_type="shard",
            shard=shard,
            description=f"Initialized month files for {shard}",
            details={"created": created},
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        shard: str,
        transaction_type: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            shard=shard,
            description=f"Added {transaction_type} of {amount} to {shard}",
            details={
                "type": transaction_type,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        shard: str,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            shard=shard,
            description=f"Updated transaction in {shard}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def transaction_moved(
        transaction_id: str,
        from_shard: str,
        to_shard: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_MOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            shard=to_shard,
            description=f"Moved transaction from {from_shard} to {to_shard}",
            details={
                "from": from_shard,
                "to": to_shard,
            },
        )

    @staticmethod
    def transaction_deleted(transaction_id: str, shard: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            shard=shard,
            description=f"Deleted transaction from {shard}",
        )

    @staticmethod
    def write_failed(
        path: str,
        error: str,
        transaction_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="file",
            entity_id=transaction_id,
            description=f"Write to {path} failed; in-memory state is ahead of the repository",
            details={"path": path},
            error_message=error,
        )

    @staticmethod
    def move_partially_failed(
        transaction_id: str,
        from_shard: str,
        to_shard: str,
        failed_paths: list[str],
        error: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MOVE_PARTIALLY_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="transaction",
            entity_id=transaction_id,
            shard=to_shard,
            description=(
                f"Move from {from_shard} to {to_shard} did not complete; "
                "the transaction may be duplicated or missing in the repository"
            ),
            details={
                "from": from_shard,
                "to": to_shard,
                "failed_paths": failed_paths,
            },
            error_message=error,
        )

    @staticmethod
    def category_added(name: str, transaction_type: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=name,
            description=f"Added {transaction_type} category",
            details={"type": transaction_type, "name": name},
        )

    @staticmethod
    def token_accepted(login: Optional[str] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOKEN_ACCEPTED,
            entity_type="token",
            description="Access token accepted by GitHub",
            details={"login": login} if login else {},
        )

    @staticmethod
    def token_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOKEN_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="token",
            description="Access token rejected",
            details={"reason": reason},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
