"""
Shared fixtures.

Every store is wired against InMemoryStorage and a fixed clock, so
tests never touch the filesystem (except the JsonFileStorage tests,
which use tmp_path) and never depend on today's date.
"""

from datetime import date

import pytest

from budget_ledger.audit import AuditLogger
from budget_ledger.config import get_settings
from budget_ledger.models.audit import AuditEvent
from budget_ledger.queries import ReconciliationEngine
from budget_ledger.services.backup import BackupCodec
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.categories import TransactionCategoryStore
from budget_ledger.services.ledger import TransactionLedger
from budget_ledger.services.preferences import PreferenceStore
from budget_ledger.services.storage import InMemoryStorage


TODAY = date(2026, 3, 15)


class RecordingAuditLogger(AuditLogger):
    """Keeps every event in memory so tests can assert on them."""

    def __init__(self):
        super().__init__()
        self.events: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return super().log(event)

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate tests from any BUDGET_* variables in the environment."""
    for name in (
        "BUDGET_MAX_CATEGORIES_PER_PERIOD",
        "BUDGET_YEAR_WINDOW",
        "BUDGET_DEFAULT_CURRENCY",
        "BUDGET_BACKUP_KDF_ITERATIONS",
        "BUDGET_BACKUP_MAX_IMPORT_SIZE_MB",
        "BUDGET_STORAGE_DATA_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return lambda: TODAY


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit():
    return RecordingAuditLogger()


@pytest.fixture
def preferences(storage, audit, clock):
    return PreferenceStore(storage, audit=audit, clock=clock)


@pytest.fixture
def budgets(storage, preferences, audit, clock):
    return BudgetPeriodStore(storage, preferences, audit=audit, clock=clock)


@pytest.fixture
def ledger(storage, budgets, audit, clock):
    return TransactionLedger(storage, budgets, audit=audit, clock=clock)


@pytest.fixture
def categories(storage, audit):
    return TransactionCategoryStore(storage, audit=audit)


@pytest.fixture
def engine(budgets, ledger):
    return ReconciliationEngine(budgets, ledger)


@pytest.fixture
def codec(preferences, budgets, ledger, categories, audit):
    return BackupCodec(preferences, budgets, ledger, categories, audit=audit)
