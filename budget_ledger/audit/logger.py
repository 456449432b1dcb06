"""
Audit Logger

Every mutation in the stores is logged as a structured event.
This provides:
1. Traceability of budget and ledger changes
2. Debugging capability when persistence fails
3. A record of backup imports and failed decrypt attempts

The audit logger:
- Is synchronous, because store operations are synchronous
- Gracefully handles failures (a logging error never fails a write)
"""

import logging

import structlog

from budget_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType


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


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at ``level``."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Events are written to the structured local log only.
    """

    def __init__(self, logger_name: str = "budget_ledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written; never raises.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value == "error":
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    def log_period_created(self, period: str) -> None:
        self.log(AuditEventBuilder.period_created(period))

    def log_period_reset(self, period: str) -> None:
        self.log(AuditEventBuilder.period_reset(period))

    def log_period_copied(self, source: str, target: str, include_notes: bool, count: int) -> None:
        self.log(AuditEventBuilder.period_copied(source, target, include_notes, count))

    def log_notes_updated(self, period: str, length: int) -> None:
        self.log(AuditEventBuilder.notes_updated(period, length))

    def log_legacy_migration(self, period: str, count: int) -> None:
        self.log(AuditEventBuilder.legacy_budget_migrated(period, count))

    def log_category(
        self,
        event_type: AuditEventType,
        period: str,
        category_id: str,
        **details,
    ) -> None:
        self.log(AuditEventBuilder.category_event(event_type, period, category_id, details))

    def log_category_rejected(self, period: str, code: str, message: str) -> None:
        self.log(AuditEventBuilder.category_rejected(period, code, message))

    def log_transaction(
        self,
        event_type: AuditEventType,
        transaction_id: str,
        **details,
    ) -> None:
        self.log(AuditEventBuilder.transaction_event(event_type, transaction_id, details))

    def log_transaction_rejected(self, code: str, message: str) -> None:
        self.log(AuditEventBuilder.transaction_rejected(code, message))

    def log_preferences_saved(self, changed: list[str]) -> None:
        self.log(AuditEventBuilder.preferences_saved(changed))

    def log_backup_exported(self, encrypted: bool, transactions: int, periods: int) -> None:
        self.log(AuditEventBuilder.backup_exported(encrypted, transactions, periods))

    def log_backup_imported(self, imported: list[str], skipped: list[str]) -> None:
        self.log(AuditEventBuilder.backup_imported(imported, skipped))

    def log_backup_import_failed(self, code: str, message: str) -> None:
        self.log(AuditEventBuilder.backup_import_failed(code, message))

    def log_decrypt_failed(self) -> None:
        self.log(AuditEventBuilder.decrypt_failed())

    def log_storage_write_failed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_write_failed(key, error_message))

    def log_data_cleared(self, keys: list[str]) -> None:
        self.log(AuditEventBuilder.data_cleared(keys))
