"""Audit logging package."""

from ledgerly.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
