"""
Main Orchestrator for Budget Ledger

This module ties together all the components:
1. Storage backend (JSON files by default)
2. Preference, budget-period, ledger and category stores
3. Reconciliation engine
4. Backup codec

DESIGN DECISION: The orchestrator is the ONLY place that reads the
current month/year selection to decide which period to operate on.
Everything below it takes the period as an explicit parameter, so the
data core can be driven for any period regardless of what a UI happens
to have selected.
"""

from datetime import date
from typing import Callable, Optional

import structlog

from budget_ledger.audit import AuditLogger, configure_logging
from budget_ledger.config import get_settings
from budget_ledger.models.backup import ImportReport
from budget_ledger.models.budget import BudgetCategory, BudgetPeriod, PeriodKey
from budget_ledger.models.ledger import Transaction
from budget_ledger.models.reconciliation import BudgetMetrics, ReconciledCategory
from budget_ledger.queries import ReconciliationEngine
from budget_ledger.services.backup import BackupCodec, backup_filename
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.categories import TransactionCategoryStore
from budget_ledger.services.ledger import TransactionLedger
from budget_ledger.services.preferences import PreferenceStore
from budget_ledger.services.storage import JsonFileStorage, KeyValueStorageInterface


logger = structlog.get_logger(__name__)


class BudgetApp:
    """
    The wired-up data core.

    Components are exposed as attributes for callers that pass explicit
    periods; the ``*_selected`` / ``current_*`` helpers resolve the
    period from preferences first.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.storage = storage
        self.audit = audit_logger or AuditLogger()
        self._clock = clock

        self.preferences = PreferenceStore(storage, audit=self.audit, clock=clock)
        self.budgets = BudgetPeriodStore(storage, self.preferences, audit=self.audit, clock=clock)
        self.ledger = TransactionLedger(storage, self.budgets, audit=self.audit, clock=clock)
        self.categories = TransactionCategoryStore(storage, audit=self.audit)
        self.reconciliation = ReconciliationEngine(self.budgets, self.ledger)
        self.backup = BackupCodec(
            self.preferences,
            self.budgets,
            self.ledger,
            self.categories,
            audit=self.audit,
        )

    # =========================================================================
    # SELECTION
    # =========================================================================

    def selected_period(self) -> PeriodKey:
        return self.preferences.selected_period()

    def select_period(self, month: int, year: int) -> PeriodKey:
        """Persist a new selection and make sure its period exists."""
        key = self.budgets.period_key(month, year)
        self.preferences.set_selected_period(key)
        self.budgets.ensure_period(key.month, key.year)
        return key

    def ensure_selected_period(self) -> BudgetPeriod:
        key = self.selected_period()
        return self.budgets.ensure_period(key.month, key.year)

    # =========================================================================
    # CURRENT-PERIOD VIEWS
    # =========================================================================

    def current_categories(self) -> list[BudgetCategory]:
        key = self.selected_period()
        return self.budgets.get_categories(key.month, key.year)

    def current_transactions(self) -> list[Transaction]:
        key = self.selected_period()
        return self.ledger.get_by_month(key.month, key.year)

    def current_reconciliation(self) -> list[ReconciledCategory]:
        key = self.selected_period()
        return self.reconciliation.reconcile_categories(key.month, key.year)

    def current_metrics(self) -> BudgetMetrics:
        key = self.selected_period()
        return self.reconciliation.metrics(key.month, key.year)

    def copy_previous_period(self, include_notes: bool = False) -> BudgetPeriod:
        """Copy last month's plan into the selected period."""
        key = self.selected_period()
        source = key.shift(-1)
        return self.budgets.copy_period(
            source.month, source.year, key.month, key.year, include_notes=include_notes
        )

    def clear_all(self) -> None:
        """
        Delete every stored document. Later reads start from defaults.

        Raises:
            StorageError: If a delete fails
        """
        removed = self.storage.clear_all()
        self.audit.log_data_cleared(removed)

    # =========================================================================
    # BACKUP
    # =========================================================================

    def backup_filename(self, encrypted: bool = False) -> str:
        return backup_filename(encrypted, self._clock())

    async def export_backup(self, passphrase: Optional[str] = None) -> str:
        """Plain JSON without a passphrase, the encrypted wrapper with one."""
        if passphrase:
            return await self.backup.export_encrypted(passphrase)
        return self.backup.export_plain()

    async def import_backup(self, text: str, passphrase: Optional[str] = None) -> ImportReport:
        report = await self.backup.import_backup(text, passphrase)
        logger.info(
            "backup_import_finished",
            imported=report.imported_sections,
            skipped=report.skipped_sections,
        )
        return report


def create_app_components(
    storage: Optional[KeyValueStorageInterface] = None,
    clock: Callable[[], date] = date.today,
) -> BudgetApp:
    """
    Factory function to create all application components.

    Args:
        storage: Backend to use. Defaults to JSON files in the configured
                 data directory.
        clock: Source of "today" for defaults and timestamps.

    Returns:
        A wired ``BudgetApp``
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    if storage is None:
        json_storage = JsonFileStorage()
        if not json_storage.is_available():
            logger.warning(
                "storage_unavailable",
                data_dir=str(json_storage.data_dir),
            )
        storage = json_storage

    return BudgetApp(storage, audit_logger=AuditLogger(), clock=clock)
