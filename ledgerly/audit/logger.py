"""
Audit Logger

DESIGN DECISION: Every write the data manager pushes to the repository,
and every failure to do so, is logged. This provides:
1. Traceability of which file was written for which transaction
2. A visible record when the repository and memory diverge
3. Debugging capability for authentication problems

The audit logger:
- Emits structured JSON through structlog
- Never raises (a logging failure must not break a ledger operation)
"""

from typing import Callable, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from ledgerly.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Events are written to the structured local log at their own severity.
    The ledger repository's git history is the durable record, so nothing
    is persisted here.
    """

    def __init__(self, logger_name: str = "ledgerly.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be emitted.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    def _emit(self, build: Callable[..., AuditEvent], *args, **kwargs) -> bool:
        """Build an event and log it; an event that fails validation is dropped."""
        try:
            event = build(*args, **kwargs)
        except PydanticValidationError as e:
            self._logger.warning("audit_event_invalid", builder=build.__name__, error=str(e))
            return False
        return self.log(event)

    def log_month_loaded(self, shard: str, income_count: int, expense_count: int) -> None:
        self._emit(AuditEventBuilder.month_loaded, shard, income_count, expense_count)

    def log_month_load_failed(self, shard: str, error: str) -> None:
        self._emit(AuditEventBuilder.month_load_failed, shard, error)

    def log_month_refreshed(self, shard: str) -> None:
        self._emit(AuditEventBuilder.month_refreshed, shard)

    def log_month_initialized(self, shard: str, created: list[str]) -> None:
        self._emit(AuditEventBuilder.month_initialized, shard, created)

    def log_transaction_added(
        self,
        transaction_id: str,
        shard: str,
        transaction_type: str,
        amount: str,
    ) -> None:
        """Log a new transaction that reached the repository."""
        self._emit(
            AuditEventBuilder.transaction_added,
            transaction_id=transaction_id,
            shard=shard,
            transaction_type=transaction_type,
            amount=amount,
        )

    def log_transaction_updated(
        self,
        transaction_id: str,
        shard: str,
        changed_fields: list[str],
    ) -> None:
        self._emit(AuditEventBuilder.transaction_updated, transaction_id, shard, changed_fields)

    def log_transaction_moved(self, transaction_id: str, from_shard: str, to_shard: str) -> None:
        self._emit(AuditEventBuilder.transaction_moved, transaction_id, from_shard, to_shard)

    def log_transaction_deleted(self, transaction_id: str, shard: str) -> None:
        self._emit(AuditEventBuilder.transaction_deleted, transaction_id, shard)

    def log_write_failed(
        self,
        path: str,
        error: str,
        transaction_id: Optional[str] = None,
    ) -> None:
        """Log a remote write that failed after memory was already changed."""
        self._emit(AuditEventBuilder.write_failed, path, error, transaction_id)

    def log_move_partially_failed(
        self,
        transaction_id: str,
        from_shard: str,
        to_shard: str,
        failed_paths: list[str],
        error: str,
    ) -> None:
        self._emit(
            AuditEventBuilder.move_partially_failed,
            transaction_id=transaction_id,
            from_shard=from_shard,
            to_shard=to_shard,
            failed_paths=failed_paths,
            error=error,
        )

    def log_category_added(self, name: str, transaction_type: str) -> None:
        self._emit(AuditEventBuilder.category_added, name, transaction_type)

    def log_token_accepted(self, login: Optional[str] = None) -> None:
        self._emit(AuditEventBuilder.token_accepted, login)

    def log_token_rejected(self, reason: str) -> None:
        self._emit(AuditEventBuilder.token_rejected, reason)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self._emit(
            AuditEventBuilder.system_error,
            error_type=error_type,
            error_message=error_message,
            details=details,
        )
