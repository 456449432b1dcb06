"""
Reconciliation Models

Read-only views produced by the reconciliation engine. All monetary
values are already rounded to 2 decimals when these are built.
"""

from pydantic import Field

from budget_ledger.models.base import RecordModel
from budget_ledger.models.budget import CategoryType


class ReconciledCategory(RecordModel):
    """A budget category with its manual, ledger and effective actuals."""

    id: str
    name: str
    type: CategoryType
    color: str
    planned: float = 0.0
    manual_actual: float = 0.0
    transaction_sum: float = 0.0
    actual_effective: float = 0.0
    remaining: float = 0.0
    percent_used: float = Field(
        default=0.0,
        ge=0,
        le=100,
        description="actual_effective / planned, capped at 100; 0 when nothing is planned"
    )

    @property
    def uses_ledger(self) -> bool:
        """True when the ledger, not the manual value, drives the actual."""
        return self.transaction_sum > 0


class BudgetMetrics(RecordModel):
    """Aggregate planned vs. effective actual figures for one period."""

    period: str

    income_planned: float = 0.0
    income_actual: float = 0.0
    variable_planned: float = 0.0
    variable_actual: float = 0.0
    fixed_planned: float = 0.0
    fixed_actual: float = 0.0
    savings_planned: float = 0.0
    savings_actual: float = 0.0
    debt_planned: float = 0.0
    debt_actual: float = 0.0

    planned_outflow: float = 0.0
    actual_outflow: float = 0.0
    planned_balance: float = 0.0
    actual_balance: float = 0.0
    planned_utilization_percent: float = 0.0
    actual_utilization_percent: float = 0.0

    categories_count: int = 0
    unattributed_total: float = 0.0
    ledger_income: float = 0.0
    ledger_expenses: float = 0.0

    def planned_for(self, category_type: CategoryType) -> float:
        return getattr(self, f"{category_type.value}_planned")

    def actual_for(self, category_type: CategoryType) -> float:
        return getattr(self, f"{category_type.value}_actual")


class TypeAllocation(RecordModel):
    amount: float = 0.0
    percentage: float = 0.0


class AllocationSummary(RecordModel):
    """How planned income is spread across the outflow types."""

    period: str
    variable: TypeAllocation = Field(default_factory=TypeAllocation)
    fixed: TypeAllocation = Field(default_factory=TypeAllocation)
    savings: TypeAllocation = Field(default_factory=TypeAllocation)
    debt: TypeAllocation = Field(default_factory=TypeAllocation)
    total_income: float = 0.0
    total_allocated: float = 0.0
    unallocated: float = 0.0
