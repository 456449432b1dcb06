"""
Transaction Ledger Models

The ledger is a flat list of dated income/expense transactions.
It is not partitioned by period in storage; period membership is
computed at query time from each transaction's ``date``.

A transaction may carry a ``budget_category_id``: a soft reference to a
budget category that is NOT enforced. It can dangle after the category
is deleted, in which case attribution falls back to the display name.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from budget_ledger.models.base import RecordModel
from budget_ledger.models.budget import MAX_AMOUNT, CategoryType


MAX_DESCRIPTION_LENGTH = 120


class TransactionType(str, Enum):
    """Direction of money for a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class SortOrder(str, Enum):
    """Supported orderings for ledger queries."""
    NEWEST = "newest"
    OLDEST = "oldest"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"


class Transaction(RecordModel):
    """A single normalized ledger entry."""

    id: str = Field(..., min_length=1, max_length=64)
    amount: float = Field(..., gt=0, le=MAX_AMOUNT)
    type: TransactionType
    category: str = Field(
        default="Other",
        max_length=40,
        description="Display name, title-cased"
    )
    budget_category_id: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Soft reference to a budget category in the same period"
    )
    budget_type: Optional[CategoryType] = None
    description: str = Field(default="Transaction", max_length=MAX_DESCRIPTION_LENGTH)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    created_at: str
    updated_at: Optional[str] = None

    def to_storage(self) -> dict:
        """Optional references are omitted rather than written as null."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionCategory(RecordModel):
    """
    Legacy flat transaction category.

    Kept so older ledger entries that reference categories by name
    still have a list to resolve against.
    """
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=40)
    type: TransactionType = TransactionType.EXPENSE
    color: str = Field(..., pattern=r"^#[0-9a-f]{6}$")


DEFAULT_TRANSACTION_CATEGORIES: tuple[dict, ...] = (
    {"id": "cat-1", "name": "Salary", "type": "income", "color": "#22c55e"},
    {"id": "cat-2", "name": "Freelance", "type": "income", "color": "#84cc16"},
    {"id": "cat-3", "name": "Investments", "type": "income", "color": "#06b6d4"},
    {"id": "cat-4", "name": "Food", "type": "expense", "color": "#f59e0b"},
    {"id": "cat-5", "name": "Rent", "type": "expense", "color": "#ef4444"},
    {"id": "cat-6", "name": "Transportation", "type": "expense", "color": "#3b82f6"},
    {"id": "cat-7", "name": "Utilities", "type": "expense", "color": "#8b5cf6"},
    {"id": "cat-8", "name": "Entertainment", "type": "expense", "color": "#ec4899"},
    {"id": "cat-9", "name": "Shopping", "type": "expense", "color": "#f97316"},
    {"id": "cat-10", "name": "Healthcare", "type": "expense", "color": "#14b8a6"},
    {"id": "cat-11", "name": "Other", "type": "expense", "color": "#64748b"},
)


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionFilter(BaseModel):
    """
    Criteria for a ledger query.

    ``month``/``year`` restrict to one period first; the remaining
    filters are applied to that subset, then ``sort`` orders it.
    """

    type: Optional[Literal["income", "expense", "all"]] = Field(
        default=None,
        description="None or 'all' for both directions"
    )
    date: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    category: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the display category"
    )
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of description or category"
    )
    sort: SortOrder = SortOrder.NEWEST
    month: Optional[int] = None
    year: Optional[int] = None


class CategoryActuals(BaseModel):
    """
    Ledger sums for one period, grouped by resolved budget category.

    Transactions that match no current category by id or by name are
    counted in ``unattributed`` and in the period totals only.
    """

    period: str
    by_category: dict[str, float] = Field(default_factory=dict)
    unattributed: float = 0.0
    unattributed_count: int = 0
    total_income: float = 0.0
    total_expenses: float = 0.0
    transaction_count: int = 0


class LedgerSummary(BaseModel):
    """Income/expense totals over a set of transactions."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    balance: float = 0.0
    transaction_count: int = 0


class MonthlySeries(BaseModel):
    """
    Income and expense totals for consecutive months, oldest first.

    The lists are parallel: ``labels[i]`` (e.g. "Mar 26") and
    ``periods[i]`` (``YYYY-MM``) describe ``income[i]``/``expenses[i]``.
    """

    labels: list[str] = Field(default_factory=list)
    periods: list[str] = Field(default_factory=list)
    income: list[float] = Field(default_factory=list)
    expenses: list[float] = Field(default_factory=list)


class CategoryTotal(BaseModel):
    """Expense total for one display category name."""

    category: str
    total: float


class TransactionUpdateResult(BaseModel):
    """
    Outcome of a partial update.

    Fields that failed validation are left unchanged and listed in
    ``rejected_fields``; the valid part of the patch is still applied.
    """

    transaction: Transaction
    rejected_fields: list[str] = Field(default_factory=list)

    @property
    def fully_applied(self) -> bool:
        return not self.rejected_fields
