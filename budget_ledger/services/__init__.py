"""Services package."""

from budget_ledger.services.backup import BackupCodec, backup_filename
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.categories import TransactionCategoryStore
from budget_ledger.services.ledger import TransactionLedger
from budget_ledger.services.preferences import PreferenceStore
from budget_ledger.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorageInterface,
    StorageError,
    StorageKeys,
    StorageUnavailableError,
)

__all__ = [
    # Stores
    "BudgetPeriodStore",
    "PreferenceStore",
    "TransactionCategoryStore",
    "TransactionLedger",
    # Backup
    "BackupCodec",
    "backup_filename",
    # Storage services
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorageInterface",
    "StorageError",
    "StorageKeys",
    "StorageUnavailableError",
]
