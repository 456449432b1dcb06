"""
Transaction Ledger

A flat list of dated income/expense transactions. Period membership is
computed at query time from each transaction's ``date``; storage is not
partitioned.

CATEGORY RESOLUTION:
A transaction links to a budget category through two tiers:
1. ``budget_category_id`` exact match against the period's categories
2. Case-insensitive match of the transaction's display ``category`` name
If neither matches, the transaction is unattributed: it is left out of
per-category totals but still counted in period totals. A rename breaks
tier 2 and a delete breaks tier 1; neither ever loses the transaction.
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import date, timedelta
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from budget_ledger.audit import AuditLogger
from budget_ledger.errors import NotFoundError, ValidationError
from budget_ledger.models.audit import AuditEventType
from budget_ledger.models.budget import MAX_AMOUNT, BudgetCategory, CategoryType, PeriodKey
from budget_ledger.models.ledger import (
    CategoryActuals,
    CategoryTotal,
    LedgerSummary,
    MonthlySeries,
    SortOrder,
    Transaction,
    TransactionFilter,
    TransactionType,
    TransactionUpdateResult,
)
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.storage import KeyValueStorageInterface, StorageError, StorageKeys
from budget_ledger.validation.normalizer import (
    clamp_number,
    generate_id,
    is_valid_calendar_date,
    round_currency,
    sanitize_text,
    utc_timestamp,
)
from budget_ledger.validation.records import (
    normalize_budget_type,
    normalize_transaction,
    normalize_transaction_type,
    normalize_transactions,
    to_wire_keys,
)


logger = structlog.get_logger(__name__)


def _valid_amount(raw: Any) -> Optional[float]:
    """A positive amount within bounds, rounded to cents; None otherwise."""
    amount = clamp_number(raw, fallback=0.0)
    return amount if 0 < amount <= MAX_AMOUNT else None


class TransactionLedger:
    """
    Add/update/delete and query transactions.

    Reads never raise for bad persisted data: records that cannot be
    repaired are skipped. Writes raise ValidationError, NotFoundError or
    StorageError.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        budgets: BudgetPeriodStore,
        audit: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._storage = storage
        self._budgets = budgets
        self._audit = audit or AuditLogger()
        self._clock = clock

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def get_all(self) -> list[Transaction]:
        return normalize_transactions(self._storage.get(StorageKeys.TRANSACTIONS))

    def _save_all(self, transactions: Iterable[Transaction]) -> None:
        try:
            self._storage.set(
                StorageKeys.TRANSACTIONS,
                [t.to_storage() for t in transactions],
            )
        except StorageError as e:
            self._audit.log_storage_write_failed(StorageKeys.TRANSACTIONS, str(e))
            raise

    def replace_all(self, raw: Any) -> list[Transaction]:
        """Normalize a raw list and overwrite the ledger (used by import)."""
        transactions = normalize_transactions(raw)
        self._save_all(transactions)
        return transactions

    def clear(self) -> None:
        self._storage.remove(StorageKeys.TRANSACTIONS)

    def _find_budget_category(
        self,
        category_id: Optional[str],
        txn_date: str,
    ) -> Optional[BudgetCategory]:
        """Look up a linked budget category in the period the date falls in."""
        key = PeriodKey.parse(txn_date[:7])
        if not category_id or key is None:
            return None
        return self._budgets.get_period_by_key(key).find_category(category_id)

    def _reject(self, message: str, code: str, field: str) -> ValidationError:
        self._audit.log_transaction_rejected(code, message)
        return ValidationError(message, code=code, field=field)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(self, data: Mapping[str, Any]) -> Transaction:
        """
        Validate and record a new transaction.

        When ``budgetCategoryId`` names a category in the transaction's
        period, the type is taken from that category (income category means
        income, anything else expense) in preference to the supplied type.

        Raises:
            ValidationError: code ``invalid_amount``, ``invalid_date`` or ``invalid_type``
            StorageError: If the write fails (code ``storage_error``)
        """
        data = to_wire_keys(data)

        amount = _valid_amount(data.get("amount"))
        if amount is None:
            raise self._reject("Amount must be greater than 0", "invalid_amount", "amount")

        txn_date = sanitize_text(data.get("date"), max_length=10)
        if not is_valid_calendar_date(txn_date):
            raise self._reject("Date must be a valid YYYY-MM-DD date", "invalid_date", "date")

        category_id = sanitize_text(data.get("budgetCategoryId"), max_length=64)
        linked = self._find_budget_category(category_id, txn_date)
        if linked is not None:
            is_income = linked.type == CategoryType.INCOME
            txn_type = TransactionType.INCOME if is_income else TransactionType.EXPENSE
            budget_type = linked.type
        else:
            txn_type = normalize_transaction_type(data.get("type"))
            budget_type = normalize_budget_type(data.get("budgetType"), None)
        if txn_type is None:
            raise self._reject("Type must be 'income' or 'expense'", "invalid_type", "type")

        category_name = data.get("category")
        if not sanitize_text(category_name) and linked is not None:
            category_name = linked.name

        transaction = normalize_transaction({
            "id": generate_id(),
            "amount": amount,
            "type": txn_type.value,
            "category": category_name,
            "budgetCategoryId": category_id,
            "budgetType": budget_type.value if budget_type else None,
            "description": data.get("description"),
            "date": txn_date,
            "createdAt": utc_timestamp(),
        })

        transactions = self.get_all()
        self._save_all([transaction, *transactions])
        self._audit.log_transaction(
            AuditEventType.TRANSACTION_ADDED,
            transaction.id,
            amount=transaction.amount,
            type=transaction.type.value,
            date=transaction.date,
        )
        return transaction

    def update(self, transaction_id: str, patch: Mapping[str, Any]) -> TransactionUpdateResult:
        """
        Apply a partial update.

        Invalid ``amount``, ``date`` or ``type`` values are dropped (the
        field keeps its current value) and reported in ``rejected_fields``;
        the rest of the patch is still applied.

        Raises:
            NotFoundError: If no transaction has that id
            StorageError: If the write fails
        """
        transactions = self.get_all()
        index = next(
            (i for i, t in enumerate(transactions) if t.id == transaction_id),
            None,
        )
        if index is None:
            raise NotFoundError(f"Transaction '{transaction_id}' not found", field="id")

        current = transactions[index]
        patch = to_wire_keys(patch)
        updates: dict[str, Any] = {}
        rejected: list[str] = []

        if "amount" in patch:
            amount = _valid_amount(patch["amount"])
            if amount is None:
                rejected.append("amount")
            else:
                updates["amount"] = amount

        if "date" in patch:
            if is_valid_calendar_date(patch["date"]):
                updates["date"] = patch["date"]
            else:
                rejected.append("date")

        if "type" in patch:
            txn_type = normalize_transaction_type(patch["type"])
            if txn_type is None:
                rejected.append("type")
            else:
                updates["type"] = txn_type.value

        for name in ("category", "description", "budgetCategoryId", "budgetType"):
            if name in patch:
                updates[name] = patch[name]

        merged = {**current.to_storage(), **updates}
        linked = self._find_budget_category(
            sanitize_text(merged.get("budgetCategoryId"), max_length=64),
            merged["date"],
        )
        if linked is not None:
            is_income = linked.type == CategoryType.INCOME
            merged["type"] = (TransactionType.INCOME if is_income else TransactionType.EXPENSE).value
            merged["budgetType"] = linked.type.value

        merged["id"] = current.id
        merged["updatedAt"] = utc_timestamp()
        # amount, date and type are already known-good, so this cannot be None
        updated = normalize_transaction(merged)
        transactions[index] = updated
        self._save_all(transactions)

        if rejected:
            logger.info("transaction_update_partial", id=current.id, rejected=rejected)
        self._audit.log_transaction(
            AuditEventType.TRANSACTION_UPDATED,
            current.id,
            fields=sorted(updates),
            rejected=rejected,
        )
        return TransactionUpdateResult(transaction=updated, rejected_fields=rejected)

    def delete(self, transaction_id: str) -> Transaction:
        """
        Raises:
            NotFoundError: If no transaction has that id (nothing was changed)
            StorageError: If the write fails
        """
        transactions = self.get_all()
        remaining = [t for t in transactions if t.id != transaction_id]
        if len(remaining) == len(transactions):
            raise NotFoundError(f"Transaction '{transaction_id}' not found", field="id")

        removed = next(t for t in transactions if t.id == transaction_id)
        self._save_all(remaining)
        self._audit.log_transaction(AuditEventType.TRANSACTION_DELETED, transaction_id)
        return removed

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.get_all():
            if transaction.id == transaction_id:
                return transaction
        return None

    def get_by_month(self, month: Any, year: Any) -> list[Transaction]:
        key = self._budgets.period_key(month, year)
        return [t for t in self.get_all() if key.contains(t.date)]

    def filter(self, criteria: Optional[TransactionFilter] = None, **kwargs: Any) -> list[Transaction]:
        """
        Query the ledger. Pure: nothing is written.

        Order of application:
        1. Period restriction (when both ``month`` and ``year`` are given)
        2. type / exact date / date range / category / search filters
        3. Sort (amount sorts break ties by newest date first)

        Raises:
            ValidationError: If keyword criteria fail validation (e.g. ``invalid_sort``)
        """
        if criteria is None:
            criteria = self._build_filter(kwargs)

        if criteria.month is not None and criteria.year is not None:
            transactions = self.get_by_month(criteria.month, criteria.year)
        else:
            transactions = self.get_all()

        if criteria.type and criteria.type != "all":
            transactions = [t for t in transactions if t.type.value == criteria.type]
        if criteria.date:
            transactions = [t for t in transactions if t.date == criteria.date]
        if criteria.start_date:
            transactions = [t for t in transactions if t.date >= criteria.start_date]
        if criteria.end_date:
            transactions = [t for t in transactions if t.date <= criteria.end_date]
        if criteria.category:
            needle = criteria.category.lower()
            transactions = [t for t in transactions if needle in t.category.lower()]
        if criteria.search:
            needle = criteria.search.lower()
            transactions = [
                t for t in transactions
                if needle in t.description.lower() or needle in t.category.lower()
            ]

        return self._sort(transactions, criteria.sort)

    @staticmethod
    def _build_filter(kwargs: Mapping[str, Any]) -> TransactionFilter:
        """
        Raises:
            ValidationError: code ``invalid_<field>`` for the first bad criterion
        """
        try:
            return TransactionFilter(**kwargs)
        except PydanticValidationError as e:
            errors = e.errors()
            loc = errors[0]["loc"] if errors else ()
            field = str(loc[0]) if loc else "filter"
            raise ValidationError(
                f"Invalid value for filter '{field}'",
                code=f"invalid_{field}",
                field=field,
            ) from None

    @staticmethod
    def _sort(transactions: list[Transaction], order: SortOrder) -> list[Transaction]:
        if order == SortOrder.OLDEST:
            return sorted(transactions, key=lambda t: t.date)

        newest_first = sorted(transactions, key=lambda t: t.date, reverse=True)
        if order == SortOrder.AMOUNT_DESC:
            return sorted(newest_first, key=lambda t: t.amount, reverse=True)
        if order == SortOrder.AMOUNT_ASC:
            return sorted(newest_first, key=lambda t: t.amount)
        return newest_first

    def actuals_by_category(self, month: Any, year: Any) -> CategoryActuals:
        """
        Sum the period's transactions per resolved budget category.

        Resolution is id first, then case-insensitive display name. Keys of
        ``by_category`` are budget category ids.
        """
        key = self._budgets.period_key(month, year)
        categories = self._budgets.get_period_by_key(key).categories
        by_id = {c.id: c for c in categories}
        by_name: dict[str, BudgetCategory] = {}
        for category in categories:
            by_name.setdefault(category.name.lower(), category)

        totals: dict[str, float] = {}
        unattributed = 0.0
        unattributed_count = 0
        income = 0.0
        expenses = 0.0
        transactions = self.get_by_month(key.month, key.year)

        for transaction in transactions:
            if transaction.type == TransactionType.INCOME:
                income += transaction.amount
            else:
                expenses += transaction.amount

            category = by_id.get(transaction.budget_category_id or "")
            if category is None:
                category = by_name.get(transaction.category.lower())
            if category is None:
                unattributed += transaction.amount
                unattributed_count += 1
                continue
            totals[category.id] = totals.get(category.id, 0.0) + transaction.amount

        return CategoryActuals(
            period=str(key),
            by_category={cid: round_currency(total) for cid, total in totals.items()},
            unattributed=round_currency(unattributed),
            unattributed_count=unattributed_count,
            total_income=round_currency(income),
            total_expenses=round_currency(expenses),
            transaction_count=len(transactions),
        )

    def summary(self, transactions: Optional[list[Transaction]] = None) -> LedgerSummary:
        """Income, expenses and balance over ``transactions`` (default: all)."""
        transactions = self.get_all() if transactions is None else transactions
        income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
        expenses = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
        return LedgerSummary(
            total_income=round_currency(income),
            total_expenses=round_currency(expenses),
            balance=round_currency(income - expenses),
            transaction_count=len(transactions),
        )

    def unique_categories(self) -> list[str]:
        return sorted({t.category for t in self.get_all()})

    def expenses_by_category(self) -> list[CategoryTotal]:
        """Expense totals per display category, in order of first appearance."""
        totals: dict[str, float] = {}
        for transaction in self.get_all():
            if transaction.type == TransactionType.EXPENSE:
                totals[transaction.category] = totals.get(transaction.category, 0.0) + transaction.amount
        return [
            CategoryTotal(category=name, total=round_currency(total))
            for name, total in totals.items()
        ]

    def monthly_series(self, months: int = 6) -> MonthlySeries:
        """Income/expense totals for the last ``months`` months, ending with this one."""
        current = PeriodKey.current(self._clock())
        keys = [current.shift(-offset) for offset in range(max(months, 0) - 1, -1, -1)]
        income = {str(key): 0.0 for key in keys}
        expenses = dict(income)

        for transaction in self.get_all():
            bucket = transaction.date[:7]
            if bucket not in income:
                continue
            if transaction.type == TransactionType.INCOME:
                income[bucket] += transaction.amount
            else:
                expenses[bucket] += transaction.amount

        return MonthlySeries(
            labels=[date(key.year, key.month + 1, 1).strftime("%b %y") for key in keys],
            periods=[str(key) for key in keys],
            income=[round_currency(income[str(key)]) for key in keys],
            expenses=[round_currency(expenses[str(key)]) for key in keys],
        )

    def spending_trend(self, days: int = 30) -> float:
        """
        Average daily expense over the last ``days`` days (today included).

        Raises:
            ValidationError: code ``invalid_days`` if ``days`` is below 1
        """
        if days < 1:
            raise ValidationError("Days must be at least 1", code="invalid_days", field="days")
        start = (self._clock() - timedelta(days=days)).isoformat()
        total = sum(
            t.amount for t in self.get_all()
            if t.type == TransactionType.EXPENSE and t.date >= start
        )
        return round_currency(total / days)
