"""
Audit Models for Budget Ledger

Every mutation of stored data is described by an AuditEvent and
written to the structured log. This provides:
1. Traceability of what changed, in which period
2. Debugging information when a write fails
3. A record of imports, exports and failed decrypt attempts

DESIGN DECISION: Audit events are log records only. They are never
persisted next to budget data and never contain passphrases or key
material.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Budget periods
    PERIOD_CREATED = "period_created"
    PERIOD_RESET = "period_reset"
    PERIOD_COPIED = "period_copied"
    NOTES_UPDATED = "notes_updated"
    LEGACY_BUDGET_MIGRATED = "legacy_budget_migrated"

    # Budget categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    CATEGORY_REJECTED = "category_rejected"

    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED = "transaction_rejected"

    # Preferences
    PREFERENCES_SAVED = "preferences_saved"

    # Backup
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_IMPORT_FAILED = "backup_import_failed"
    DECRYPT_FAILED = "decrypt_failed"

    # System events
    STORAGE_WRITE_FAILED = "storage_write_failed"
    DATA_CLEARED = "data_cleared"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'period', 'category', 'transaction')"
    )
    entity_id: Optional[str] = None
    period: Optional[str] = Field(
        default=None,
        description="YYYY-MM key the event relates to, if any"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "period": self.period,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.category_added("2026-01", category_id, name)
        event = AuditEventBuilder.storage_write_failed("budgets", "disk full")
    """

    @staticmethod
    def period_created(period: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_CREATED,
            entity_type="period",
            entity_id=period,
            period=period,
            description=f"Budget period {period} created with default categories",
        )

    @staticmethod
    def period_reset(period: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="period",
            entity_id=period,
            period=period,
            description=f"Budget period {period} reset to defaults",
        )

    @staticmethod
    def period_copied(source: str, target: str, include_notes: bool, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_COPIED,
            severity=AuditSeverity.WARNING,
            entity_type="period",
            entity_id=target,
            period=target,
            description=f"Budget period {target} replaced by a copy of {source}",
            details={
                "source": source,
                "include_notes": include_notes,
                "categories_copied": count,
            },
        )

    @staticmethod
    def notes_updated(period: str, length: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTES_UPDATED,
            severity=AuditSeverity.DEBUG,
            entity_type="period",
            entity_id=period,
            period=period,
            description=f"Notes for {period} updated",
            details={"length": length},
        )

    @staticmethod
    def legacy_budget_migrated(period: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEGACY_BUDGET_MIGRATED,
            entity_type="period",
            entity_id=period,
            period=period,
            description=f"Legacy single-period budget migrated into {period}",
            details={"categories": count},
        )

    @staticmethod
    def category_event(
        event_type: AuditEventType,
        period: str,
        category_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=category_id,
            period=period,
            description=f"Budget category {event_type.value.split('_')[-1]} in {period}",
            details=details or {},
        )

    @staticmethod
    def category_rejected(period: str, code: str, message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            period=period,
            description="Budget category change rejected",
            error_code=code,
            error_message=message,
        )

    @staticmethod
    def transaction_event(
        event_type: AuditEventType,
        transaction_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {event_type.value.split('_')[-1]}",
            details=details or {},
        )

    @staticmethod
    def transaction_rejected(code: str, message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description="Transaction rejected by validation",
            error_code=code,
            error_message=message,
        )

    @staticmethod
    def preferences_saved(changed: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_SAVED,
            entity_type="preferences",
            description="Preferences saved",
            details={"fields": changed},
        )

    @staticmethod
    def backup_exported(encrypted: bool, transactions: int, periods: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description="Encrypted backup exported" if encrypted else "Backup exported",
            details={
                "encrypted": encrypted,
                "transactions": transactions,
                "periods": periods,
            },
        )

    @staticmethod
    def backup_imported(imported: list[str], skipped: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            entity_type="backup",
            description=f"Backup imported ({len(imported)} sections)",
            details={"imported": imported, "skipped": skipped},
        )

    @staticmethod
    def backup_import_failed(code: str, message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description="Backup import rejected",
            error_code=code,
            error_message=message,
        )

    @staticmethod
    def decrypt_failed() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DECRYPT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description="Encrypted backup could not be decrypted",
            error_code="crypto_error",
        )

    @staticmethod
    def storage_write_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            entity_id=key,
            description=f"Write to storage key '{key}' failed",
            error_code="storage_error",
            error_message=error_message,
        )

    @staticmethod
    def data_cleared(keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="storage",
            description="All stored data removed",
            details={"keys": keys},
        )
