"""
Record Normalizers

Build typed models out of arbitrary persisted or imported blobs.

DESIGN DECISION: Normalization happens at the storage boundary, in both
directions:

READ PATH:
- Every blob loaded from storage passes through these functions
- Missing or malformed fields fall back to defaults
- Unrecoverable transactions are dropped, never raised

WRITE PATH:
- Stores hand already-normalized models back to storage
- Nothing downstream ever sees an un-normalized record

IMPORTANT: Nothing in this module raises for bad data.
Rejection with a precise error is the stores' job, not ours.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, Optional

from pydantic.alias_generators import to_camel

from budget_ledger.models.budget import (
    DEFAULT_BUDGET_CATEGORIES,
    MAX_AMOUNT,
    MAX_CATEGORY_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    STORAGE_VERSION,
    TYPE_COLORS,
    BudgetCategory,
    BudgetPeriod,
    BudgetsStore,
    CategoryType,
    PeriodKey,
)
from budget_ledger.models.ledger import (
    DEFAULT_TRANSACTION_CATEGORIES,
    MAX_DESCRIPTION_LENGTH,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from budget_ledger.models.preferences import (
    SUPPORTED_CURRENCY_CODES,
    Preferences,
    Theme,
    UIThemePreset,
)
from budget_ledger.validation.normalizer import (
    DEFAULT_COLOR,
    clamp_number,
    generate_id,
    is_valid_calendar_date,
    normalize_hex_color,
    normalize_id,
    normalize_month,
    normalize_year,
    sanitize_text,
    title_case,
    utc_timestamp,
)


DEFAULT_MAX_CATEGORIES = 200


def to_wire_keys(raw: Any) -> dict[str, Any]:
    """Copy a mapping with snake_case keys rewritten to their camelCase wire form."""
    if not isinstance(raw, Mapping):
        return {}
    return {
        (to_camel(key) if isinstance(key, str) and "_" in key else key): value
        for key, value in raw.items()
    }


def _field(raw: Any, *names: str) -> Any:
    """Read the first present key (camelCase or snake_case) from a mapping."""
    if not isinstance(raw, Mapping):
        return None
    for name in names:
        if name in raw:
            return raw[name]
    return None


# =============================================================================
# BUDGET CATEGORIES AND PERIODS
# =============================================================================

def normalize_budget_type(
    raw: Any,
    fallback: Optional[CategoryType] = CategoryType.VARIABLE,
) -> Optional[CategoryType]:
    if isinstance(raw, CategoryType):
        return raw
    try:
        return CategoryType(raw)
    except ValueError:
        return fallback


def default_color_for_type(category_type: Optional[CategoryType]) -> str:
    return TYPE_COLORS.get(category_type, DEFAULT_COLOR)


def normalize_category_name(raw: Any, fallback: str = "Item") -> str:
    """Sanitize to 40 characters and title-case."""
    text = sanitize_text(raw, max_length=MAX_CATEGORY_NAME_LENGTH, fallback=fallback or "Item")
    return title_case(text)[:MAX_CATEGORY_NAME_LENGTH]


def normalize_amount(raw: Any) -> float:
    """A budget amount: 0..1e9, 2 decimals, 0 when unparseable."""
    return clamp_number(raw, fallback=0.0, min_value=0.0, max_value=MAX_AMOUNT)


def normalize_budget_category(raw: Any, index: int = 0) -> BudgetCategory:
    """
    Build a BudgetCategory from any value.

    ``index`` only feeds the fallback name ("Item 3") for nameless rows.
    """
    category_type = normalize_budget_type(_field(raw, "type"))
    return BudgetCategory(
        id=normalize_id(_field(raw, "id")),
        name=normalize_category_name(_field(raw, "name"), f"Item {index + 1}"),
        type=category_type,
        color=normalize_hex_color(_field(raw, "color"), default_color_for_type(category_type)),
        planned=normalize_amount(_field(raw, "planned")),
        actual=normalize_amount(_field(raw, "actual")),
    )


def default_budget_categories() -> list[BudgetCategory]:
    """A fresh copy of the default household category set."""
    return [
        normalize_budget_category(raw, index)
        for index, raw in enumerate(DEFAULT_BUDGET_CATEGORIES)
    ]


def dedupe_category_ids(categories: Iterable[BudgetCategory]) -> list[BudgetCategory]:
    """Regenerate the id of any later category whose id was already seen."""
    seen: set[str] = set()
    result = []
    for category in categories:
        if category.id in seen:
            category = category.model_copy(update={"id": generate_id()})
        seen.add(category.id)
        result.append(category)
    return result


def normalize_notes(raw: Any) -> str:
    return sanitize_text(raw, max_length=MAX_NOTES_LENGTH, fallback="", trim=False)


def default_budget_period(key: PeriodKey) -> BudgetPeriod:
    return BudgetPeriod(key=str(key), categories=default_budget_categories())


def normalize_budget_period(
    raw: Any,
    key: PeriodKey,
    max_categories: int = DEFAULT_MAX_CATEGORIES,
) -> BudgetPeriod:
    """
    Build a BudgetPeriod for ``key`` from any value.

    A missing or non-list ``categories`` field yields the default set; an
    explicit empty list stays empty. Rows beyond ``max_categories`` are
    dropped and duplicate ids are regenerated.
    """
    if not isinstance(raw, Mapping):
        return default_budget_period(key)

    raw_categories = _field(raw, "categories")
    if isinstance(raw_categories, list):
        categories = dedupe_category_ids(
            normalize_budget_category(item, index)
            for index, item in enumerate(raw_categories[:max_categories])
        )
    else:
        categories = default_budget_categories()

    updated_at = _field(raw, "updatedAt", "updated_at")
    return BudgetPeriod(
        key=str(key),
        notes=normalize_notes(_field(raw, "notes")),
        categories=categories,
        updated_at=updated_at if isinstance(updated_at, str) else None,
    )


def normalize_budgets_store(
    raw: Any,
    max_categories: int = DEFAULT_MAX_CATEGORIES,
    today: Optional[date] = None,
    window: Optional[int] = None,
) -> BudgetsStore:
    """
    Keep only well-formed ``YYYY-MM`` period keys, each normalized.

    With a ``window``, periods whose year falls outside today +/- ``window``
    years are dropped too.
    """
    current_year = (today or date.today()).year
    store = BudgetsStore(version=STORAGE_VERSION)
    raw_periods = _field(raw, "periods")
    if not isinstance(raw_periods, Mapping):
        return store

    for text_key, raw_period in raw_periods.items():
        key = PeriodKey.parse(text_key)
        if key is None:
            continue
        if window is not None and abs(key.year - current_year) > window:
            continue
        store.periods[str(key)] = normalize_budget_period(raw_period, key, max_categories)
    return store


# =============================================================================
# TRANSACTIONS
# =============================================================================

def normalize_transaction_type(raw: Any) -> Optional[TransactionType]:
    if isinstance(raw, TransactionType):
        return raw
    try:
        return TransactionType(raw)
    except ValueError:
        return None


def normalize_transaction(raw: Any) -> Optional[Transaction]:
    """
    Build a Transaction, or return None when the record is unrecoverable.

    A transaction without a valid type, a real calendar date or a positive
    amount cannot be repaired by defaulting, so it is dropped.
    """
    if not isinstance(raw, Mapping):
        return None

    transaction_type = normalize_transaction_type(_field(raw, "type"))
    txn_date = sanitize_text(_field(raw, "date"), max_length=10)
    if transaction_type is None or not is_valid_calendar_date(txn_date):
        return None

    amount = clamp_number(_field(raw, "amount"), fallback=0.0, max_value=MAX_AMOUNT)
    if amount <= 0:
        return None

    budget_category_id = sanitize_text(
        _field(raw, "budgetCategoryId", "budget_category_id"), max_length=64
    )
    created_at = _field(raw, "createdAt", "created_at")
    updated_at = _field(raw, "updatedAt", "updated_at")

    return Transaction(
        id=normalize_id(_field(raw, "id")),
        amount=amount,
        type=transaction_type,
        category=normalize_category_name(_field(raw, "category"), "Other"),
        budget_category_id=budget_category_id or None,
        budget_type=normalize_budget_type(_field(raw, "budgetType", "budget_type"), None),
        description=sanitize_text(
            _field(raw, "description"),
            max_length=MAX_DESCRIPTION_LENGTH,
            fallback="Transaction",
        ),
        date=txn_date,
        created_at=created_at if isinstance(created_at, str) else utc_timestamp(),
        updated_at=updated_at if isinstance(updated_at, str) else None,
    )


def normalize_transactions(raw: Any) -> list[Transaction]:
    """Normalize a list, dropping bad records and regenerating duplicate ids."""
    if not isinstance(raw, list):
        return []

    seen: set[str] = set()
    result = []
    for item in raw:
        transaction = normalize_transaction(item)
        if transaction is None:
            continue
        if transaction.id in seen:
            transaction = transaction.model_copy(update={"id": generate_id()})
        seen.add(transaction.id)
        result.append(transaction)
    return result


def normalize_transaction_category(raw: Any, index: int = 0) -> TransactionCategory:
    is_income = _field(raw, "type") == TransactionType.INCOME.value
    category_type = TransactionType.INCOME if is_income else TransactionType.EXPENSE
    return TransactionCategory(
        id=normalize_id(_field(raw, "id"), fallback=f"cat-{index + 1}"),
        name=normalize_category_name(_field(raw, "name"), f"Category {index + 1}"),
        type=category_type,
        color=normalize_hex_color(
            _field(raw, "color"),
            "#22c55e" if is_income else "#64748b",
        ),
    )


def default_transaction_categories() -> list[TransactionCategory]:
    return [
        normalize_transaction_category(raw, index)
        for index, raw in enumerate(DEFAULT_TRANSACTION_CATEGORIES)
    ]


def normalize_transaction_categories(raw: Any) -> list[TransactionCategory]:
    """A non-list yields the defaults; duplicate ids are regenerated."""
    if not isinstance(raw, list):
        return default_transaction_categories()

    seen: set[str] = set()
    result = []
    for index, item in enumerate(raw):
        category = normalize_transaction_category(item, index)
        if category.id in seen:
            category = category.model_copy(update={"id": generate_id()})
        seen.add(category.id)
        result.append(category)
    return result


# =============================================================================
# PREFERENCES
# =============================================================================

def normalize_currency(raw: Any, default: str = "USD") -> str:
    code = str(raw or "").strip().upper()
    return code if code in SUPPORTED_CURRENCY_CODES else default


def normalize_preferences(
    raw: Any,
    today: Optional[date] = None,
    year_window: int = 25,
    default_currency: str = "USD",
) -> Preferences:
    """
    Merge ``raw`` onto the defaults and re-validate every field.

    Persisted types are never trusted: a string month, an unknown theme or
    a currency outside the allow-list each fall back independently.
    """
    today = today or date.today()

    preset = _field(raw, "uiThemePreset", "ui_theme_preset")
    try:
        ui_theme_preset = UIThemePreset(preset)
    except ValueError:
        ui_theme_preset = UIThemePreset.DEFAULT

    selected_month = _field(raw, "selectedMonth", "selected_month")
    selected_year = _field(raw, "selectedYear", "selected_year")

    return Preferences(
        currency=normalize_currency(_field(raw, "currency"), default_currency),
        theme=Theme.DARK if _field(raw, "theme") == Theme.DARK.value else Theme.LIGHT,
        ui_theme_preset=ui_theme_preset,
        selected_month=normalize_month(selected_month, today=today),
        selected_year=normalize_year(selected_year, today=today, window=year_window),
    )


__all__ = [
    "DEFAULT_MAX_CATEGORIES",
    "dedupe_category_ids",
    "default_budget_categories",
    "default_budget_period",
    "default_color_for_type",
    "default_transaction_categories",
    "normalize_amount",
    "normalize_budget_category",
    "normalize_budget_period",
    "normalize_budget_type",
    "normalize_budgets_store",
    "normalize_category_name",
    "normalize_currency",
    "normalize_notes",
    "normalize_preferences",
    "normalize_transaction",
    "normalize_transaction_categories",
    "normalize_transaction_category",
    "normalize_transaction_type",
    "normalize_transactions",
    "to_wire_keys",
]
