"""Read-only query package."""

from budget_ledger.queries.reconciliation import (
    ReconciliationEngine,
    effective_actual,
    percent_of,
)

__all__ = ["ReconciliationEngine", "effective_actual", "percent_of"]
