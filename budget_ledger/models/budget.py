"""
Budget Data Models

These models define the shape of budget data after normalization.
Raw blobs from storage never reach the rest of the system directly:
the record normalizers in ``budget_ledger.validation.records`` build
these models, so everything downstream can rely on the bounds below.

DESIGN DECISION: Budget data is partitioned by calendar month.
Each ``YYYY-MM`` key owns an independent set of categories and notes.
"""

import re
from datetime import date
from enum import Enum
from functools import total_ordering
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from budget_ledger.models.base import RecordModel
from budget_ledger.validation.normalizer import normalize_month, normalize_year


STORAGE_VERSION = 2
MAX_AMOUNT = 1_000_000_000
MAX_CATEGORY_NAME_LENGTH = 40
MAX_NOTES_LENGTH = 1000

_PERIOD_KEY = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


# =============================================================================
# ENUMS
# =============================================================================

class CategoryType(str, Enum):
    """
    Budget category types.

    Income is planned against; the other four are outflows.
    """
    INCOME = "income"
    VARIABLE = "variable"
    FIXED = "fixed"
    SAVINGS = "savings"
    DEBT = "debt"


OUTFLOW_TYPES = (
    CategoryType.VARIABLE,
    CategoryType.FIXED,
    CategoryType.SAVINGS,
    CategoryType.DEBT,
)

TYPE_COLORS = {
    CategoryType.INCOME: "#22c55e",
    CategoryType.VARIABLE: "#ec4899",
    CategoryType.FIXED: "#ef4444",
    CategoryType.SAVINGS: "#3b82f6",
    CategoryType.DEBT: "#8b5cf6",
}


# =============================================================================
# PERIOD KEY
# =============================================================================

@total_ordering
class PeriodKey(BaseModel):
    """
    A calendar month bucket.

    ``month`` is zero-based; the serialized form ``YYYY-MM`` is one-based.
    Keys order by calendar order.
    """
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=0, le=9999)
    month: int = Field(..., ge=0, le=11)

    @classmethod
    def from_parts(
        cls,
        month,
        year,
        today: Optional[date] = None,
        window: int = 25,
    ) -> "PeriodKey":
        """Build a key from untrusted month/year values, clamping both."""
        return cls(
            year=normalize_year(year, today=today, window=window),
            month=normalize_month(month, today=today),
        )

    @classmethod
    def parse(cls, text: str) -> Optional["PeriodKey"]:
        """Parse ``YYYY-MM``; returns None for anything else."""
        match = _PERIOD_KEY.match(text) if isinstance(text, str) else None
        if not match:
            return None
        return cls(year=int(match.group(1)), month=int(match.group(2)) - 1)

    @classmethod
    def current(cls, today: Optional[date] = None) -> "PeriodKey":
        today = today or date.today()
        return cls(year=today.year, month=today.month - 1)

    def shift(self, months: int) -> "PeriodKey":
        """Return the key ``months`` calendar months away (negative for earlier)."""
        index = self.year * 12 + self.month + months
        return PeriodKey(year=index // 12, month=index % 12)

    def contains(self, date_text: str) -> bool:
        """True if an ISO date string falls inside this month."""
        return isinstance(date_text, str) and date_text[:7] == str(self)

    def first_day(self) -> str:
        return f"{str(self)}-01"

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month + 1:02d}"

    def __lt__(self, other: "PeriodKey") -> bool:
        if not isinstance(other, PeriodKey):
            return NotImplemented
        return (self.year, self.month) < (other.year, other.month)


# =============================================================================
# CATEGORIES AND PERIODS
# =============================================================================

class BudgetCategory(RecordModel):
    """
    One budget line within a period.

    ``actual`` is the manually entered amount. The effective actual used
    in summaries is derived by the reconciliation engine.
    """
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=MAX_CATEGORY_NAME_LENGTH)
    type: CategoryType = Field(default=CategoryType.VARIABLE)
    color: str = Field(..., pattern=r"^#[0-9a-f]{6}$")
    planned: float = Field(default=0.0, ge=0, le=MAX_AMOUNT)
    actual: float = Field(default=0.0, ge=0, le=MAX_AMOUNT)


class BudgetPeriod(RecordModel):
    """
    All budget data for a single month.

    Exactly one exists per period key. Periods are never removed,
    only reset to the default category set.
    """
    key: str = Field(..., pattern=_PERIOD_KEY.pattern)
    notes: str = Field(default="", max_length=MAX_NOTES_LENGTH)
    categories: list[BudgetCategory] = Field(default_factory=list)
    updated_at: Optional[str] = Field(
        default=None,
        description="ISO timestamp of the last write, None for untouched defaults"
    )

    @property
    def period_key(self) -> PeriodKey:
        return PeriodKey.parse(self.key)

    def find_category(self, category_id: str) -> Optional[BudgetCategory]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


class BudgetsStore(RecordModel):
    """The versioned multi-period layout persisted under the ``budgets`` key."""
    version: int = Field(default=STORAGE_VERSION)
    periods: dict[str, BudgetPeriod] = Field(default_factory=dict)


DEFAULT_BUDGET_CATEGORIES: tuple[dict, ...] = (
    {"id": "inc-1", "name": "Salary", "type": "income", "color": "#22c55e"},
    {"id": "inc-2", "name": "Freelance", "type": "income", "color": "#84cc16"},
    {"id": "inc-3", "name": "Investments", "type": "income", "color": "#06b6d4"},

    {"id": "var-1", "name": "Groceries", "type": "variable", "color": "#f59e0b"},
    {"id": "var-2", "name": "Dining Out", "type": "variable", "color": "#ec4899"},
    {"id": "var-3", "name": "Shopping", "type": "variable", "color": "#f97316"},
    {"id": "var-4", "name": "Entertainment", "type": "variable", "color": "#8b5cf6"},

    {"id": "fix-1", "name": "Rent", "type": "fixed", "color": "#ef4444"},
    {"id": "fix-2", "name": "Utilities", "type": "fixed", "color": "#06b6d4"},
    {"id": "fix-3", "name": "Subscriptions", "type": "fixed", "color": "#8b5cf6"},
    {"id": "fix-4", "name": "Transportation", "type": "fixed", "color": "#3b82f6"},
    {"id": "fix-5", "name": "Insurance", "type": "fixed", "color": "#14b8a6"},

    {"id": "sav-1", "name": "Emergency Fund", "type": "savings", "color": "#22c55e"},
    {"id": "sav-2", "name": "Holidays", "type": "savings", "color": "#ec4899"},
    {"id": "sav-3", "name": "Retirement", "type": "savings", "color": "#06b6d4"},
    {"id": "sav-4", "name": "Other Savings", "type": "savings", "color": "#84cc16"},

    {"id": "debt-1", "name": "Car Lease", "type": "debt", "color": "#ef4444"},
    {"id": "debt-2", "name": "Personal Loan", "type": "debt", "color": "#f97316"},
    {"id": "debt-3", "name": "Credit Card", "type": "debt", "color": "#8b5cf6"},
    {"id": "debt-4", "name": "Student Loan", "type": "debt", "color": "#3b82f6"},
)
