"""
Data Models Package

This package contains all Pydantic models used in the budget ledger.
Every record that reaches a store, the reconciliation engine or a
backup file conforms to these schemas.
"""

from budget_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budget_ledger.models.backup import (
    ENCRYPTION_VERSION,
    BackupEnvelope,
    EncryptedBackup,
    EncryptionMetadata,
    ImportReport,
)
from budget_ledger.models.budget import (
    DEFAULT_BUDGET_CATEGORIES,
    MAX_AMOUNT,
    OUTFLOW_TYPES,
    STORAGE_VERSION,
    BudgetCategory,
    BudgetPeriod,
    BudgetsStore,
    CategoryType,
    PeriodKey,
)
from budget_ledger.models.ledger import (
    DEFAULT_TRANSACTION_CATEGORIES,
    CategoryActuals,
    CategoryTotal,
    LedgerSummary,
    MonthlySeries,
    SortOrder,
    Transaction,
    TransactionCategory,
    TransactionFilter,
    TransactionType,
    TransactionUpdateResult,
)
from budget_ledger.models.preferences import (
    SUPPORTED_CURRENCIES,
    CurrencyInfo,
    Preferences,
    Theme,
    UIThemePreset,
)
from budget_ledger.models.reconciliation import (
    AllocationSummary,
    BudgetMetrics,
    ReconciledCategory,
    TypeAllocation,
)

__all__ = [
    # Budget models
    "DEFAULT_BUDGET_CATEGORIES",
    "MAX_AMOUNT",
    "OUTFLOW_TYPES",
    "STORAGE_VERSION",
    "BudgetCategory",
    "BudgetPeriod",
    "BudgetsStore",
    "CategoryType",
    "PeriodKey",
    # Ledger models
    "DEFAULT_TRANSACTION_CATEGORIES",
    "CategoryActuals",
    "CategoryTotal",
    "LedgerSummary",
    "MonthlySeries",
    "SortOrder",
    "Transaction",
    "TransactionCategory",
    "TransactionFilter",
    "TransactionType",
    "TransactionUpdateResult",
    # Preferences
    "SUPPORTED_CURRENCIES",
    "CurrencyInfo",
    "Preferences",
    "Theme",
    "UIThemePreset",
    # Reconciliation views
    "AllocationSummary",
    "BudgetMetrics",
    "ReconciledCategory",
    "TypeAllocation",
    # Backup envelopes
    "ENCRYPTION_VERSION",
    "BackupEnvelope",
    "EncryptedBackup",
    "EncryptionMetadata",
    "ImportReport",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
