"""
Reconciliation Engine

DESIGN DECISION: Reconciliation is DETERMINISTIC and READ-ONLY.
Two independent sources describe what was spent in a category:
- the manual ``actual`` typed into the budget
- the sum of ledger transactions attributed to the category

Per category and period:

    actual_effective = transaction_sum if transaction_sum > 0 else manual_actual

Once transactions are logged against a category the ledger is
authoritative; until then the manual figure is honored. If every
transaction is later deleted the manual figure becomes visible again.

Balances are always measured against PLANNED income, so overspending
shows even when income logging lags behind. All monetary outputs are
rounded to 2 decimals as they are aggregated.
"""

from typing import Any, Optional

from budget_ledger.models.budget import OUTFLOW_TYPES, CategoryType, PeriodKey
from budget_ledger.models.ledger import CategoryActuals
from budget_ledger.models.reconciliation import (
    AllocationSummary,
    BudgetMetrics,
    ReconciledCategory,
    TypeAllocation,
)
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.ledger import TransactionLedger
from budget_ledger.validation.normalizer import round_currency


def effective_actual(manual_actual: float, transaction_sum: float) -> float:
    """The ledger wins once it is nonzero; otherwise the manual value stands."""
    return round_currency(transaction_sum if transaction_sum > 0 else manual_actual)


def percent_of(part: float, whole: float, cap: Optional[float] = None) -> float:
    """``part / whole * 100`` rounded to 2 decimals; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0.0
    percent = round_currency(part / whole * 100)
    return min(percent, cap) if cap is not None else percent


class ReconciliationEngine:
    """
    Derives effective actuals and period metrics.

    Every call names its period explicitly; nothing here reads the
    current selection.
    """

    def __init__(self, budgets: BudgetPeriodStore, ledger: TransactionLedger):
        self._budgets = budgets
        self._ledger = ledger

    def reconcile_categories(self, month: Any, year: Any) -> list[ReconciledCategory]:
        """One row per budget category with manual, ledger and effective actuals."""
        key = self._budgets.period_key(month, year)
        return self._rows(key, self._ledger.actuals_by_category(key.month, key.year))

    def _rows(self, key: PeriodKey, actuals: CategoryActuals) -> list[ReconciledCategory]:
        period = self._budgets.get_period_by_key(key)
        rows = []
        for category in period.categories:
            transaction_sum = actuals.by_category.get(category.id, 0.0)
            actual = effective_actual(category.actual, transaction_sum)
            rows.append(ReconciledCategory(
                id=category.id,
                name=category.name,
                type=category.type,
                color=category.color,
                planned=category.planned,
                manual_actual=category.actual,
                transaction_sum=transaction_sum,
                actual_effective=actual,
                remaining=round_currency(category.planned - actual),
                percent_used=percent_of(actual, category.planned, cap=100.0),
            ))
        return rows

    def metrics(self, month: Any, year: Any) -> BudgetMetrics:
        """Planned vs. effective actual totals by type, balances and utilization."""
        key = self._budgets.period_key(month, year)
        actuals = self._ledger.actuals_by_category(key.month, key.year)
        rows = self._rows(key, actuals)

        planned = {category_type: 0.0 for category_type in CategoryType}
        actual = {category_type: 0.0 for category_type in CategoryType}
        for row in rows:
            planned[row.type] += row.planned
            actual[row.type] += row.actual_effective

        planned = {t: round_currency(v) for t, v in planned.items()}
        actual = {t: round_currency(v) for t, v in actual.items()}

        income_planned = planned[CategoryType.INCOME]
        planned_outflow = round_currency(sum(planned[t] for t in OUTFLOW_TYPES))
        actual_outflow = round_currency(sum(actual[t] for t in OUTFLOW_TYPES))

        fields = {}
        for category_type in CategoryType:
            fields[f"{category_type.value}_planned"] = planned[category_type]
            fields[f"{category_type.value}_actual"] = actual[category_type]

        return BudgetMetrics(
            period=str(key),
            **fields,
            planned_outflow=planned_outflow,
            actual_outflow=actual_outflow,
            planned_balance=round_currency(income_planned - planned_outflow),
            actual_balance=round_currency(income_planned - actual_outflow),
            planned_utilization_percent=percent_of(planned_outflow, income_planned),
            actual_utilization_percent=percent_of(actual_outflow, income_planned),
            categories_count=len(rows),
            unattributed_total=actuals.unattributed,
            ledger_income=actuals.total_income,
            ledger_expenses=actuals.total_expenses,
        )

    def allocation(self, month: Any, year: Any) -> AllocationSummary:
        """How the effective outflow splits across variable/fixed/savings/debt."""
        metrics = self.metrics(month, year)
        total = metrics.actual_outflow

        shares = {
            category_type.value: TypeAllocation(
                amount=metrics.actual_for(category_type),
                percentage=percent_of(metrics.actual_for(category_type), total),
            )
            for category_type in OUTFLOW_TYPES
        }
        return AllocationSummary(
            period=metrics.period,
            **shares,
            total_income=metrics.income_planned,
            total_allocated=total,
            unallocated=round_currency(metrics.income_planned - total),
        )
