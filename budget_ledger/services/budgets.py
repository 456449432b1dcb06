"""
Budget Period Store

Owns every BudgetPeriod and BudgetCategory. Budget data is partitioned by
calendar month: each ``YYYY-MM`` key has its own categories and notes.

STATE PER PERIOD KEY:
    absent --(ensure_period)--> present, default categories
    present --(mutations)--> present, modified
    present --(reset_period)--> present, default categories

Periods are never removed, only reset, so navigating between months can
never silently lose historical data.

MIGRATION:
Runs lazily on every store load and is idempotent. If the multi-period
``budgets`` key exists it is used as-is. Otherwise a legacy single-period
``budget`` blob, when present, becomes the period for the currently
selected month. The legacy blob is left in place.

Every operation takes an explicit (month, year). ``month`` is zero-based.
"""

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any, Optional

import structlog

from budget_ledger.audit import AuditLogger
from budget_ledger.config import get_settings
from budget_ledger.errors import CapacityError, NotFoundError, ValidationError
from budget_ledger.models.audit import AuditEventType
from budget_ledger.models.budget import (
    BudgetCategory,
    BudgetPeriod,
    BudgetsStore,
    PeriodKey,
)
from budget_ledger.services.preferences import PreferenceStore
from budget_ledger.services.storage import KeyValueStorageInterface, StorageError, StorageKeys
from budget_ledger.validation.normalizer import (
    generate_id,
    normalize_hex_color,
    sanitize_text,
    utc_timestamp,
)
from budget_ledger.validation.records import (
    default_budget_period,
    normalize_amount,
    normalize_budget_category,
    normalize_budget_period,
    normalize_budget_type,
    normalize_budgets_store,
    normalize_category_name,
    normalize_notes,
)


logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = ("name", "planned", "actual", "color")


class BudgetPeriodStore:
    """
    Read-modify-write store for the versioned multi-period budget layout.

    Every mutation loads the whole store, applies one change and writes it
    back. Storage failures surface as StorageError (a PersistenceError).
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        preferences: PreferenceStore,
        audit: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        settings = get_settings().budget
        self._storage = storage
        self._preferences = preferences
        self._audit = audit or AuditLogger()
        self._clock = clock
        self._max_categories = settings.max_categories_per_period
        self._year_window = settings.year_window

    @property
    def max_categories(self) -> int:
        return self._max_categories

    def period_key(self, month: Any, year: Any) -> PeriodKey:
        """Clamp untrusted month/year into a PeriodKey."""
        return PeriodKey.from_parts(
            month, year, today=self._clock(), window=self._year_window
        )

    # =========================================================================
    # LOAD / SAVE / MIGRATION
    # =========================================================================

    def _load_store(self) -> BudgetsStore:
        existing = self._storage.get(StorageKeys.BUDGETS)
        if existing is not None:
            return self._normalize_store(existing)
        return self._migrate_legacy()

    def _normalize_store(self, raw: Any) -> BudgetsStore:
        return normalize_budgets_store(
            raw,
            self._max_categories,
            today=self._clock(),
            window=self._year_window,
        )

    def _migrate_legacy(self) -> BudgetsStore:
        store = BudgetsStore()
        legacy = self._storage.get(StorageKeys.LEGACY_BUDGET)

        if isinstance(legacy, Mapping):
            key = self._preferences.selected_period()
            period = normalize_budget_period(legacy, key, self._max_categories)
            store.periods[str(key)] = period
            migrated = self._try_save(store)
            if migrated:
                self._audit.log_legacy_migration(str(key), len(period.categories))
            return store

        self._try_save(store)
        return store

    def _try_save(self, store: BudgetsStore) -> bool:
        """Persist during migration; a failure is retried on the next load."""
        try:
            self._save_store(store)
        except StorageError as e:
            logger.warning("budgets_migration_write_failed", error=str(e))
            return False
        return True

    def _save_store(self, store: BudgetsStore) -> None:
        try:
            self._storage.set(StorageKeys.BUDGETS, store.to_storage())
        except StorageError as e:
            self._audit.log_storage_write_failed(StorageKeys.BUDGETS, str(e))
            raise

    def _save_period(self, store: BudgetsStore, period: BudgetPeriod) -> BudgetPeriod:
        period = period.model_copy(update={"updated_at": utc_timestamp()})
        store.periods[period.key] = period
        self._save_store(store)
        return period

    def _get_from(self, store: BudgetsStore, key: PeriodKey) -> BudgetPeriod:
        return store.periods.get(str(key)) or default_budget_period(key)

    # =========================================================================
    # PERIODS
    # =========================================================================

    def snapshot(self) -> BudgetsStore:
        """The full normalized store (used by backup export)."""
        return self._load_store()

    def list_periods(self) -> list[PeriodKey]:
        """All known periods in ascending calendar order."""
        keys = (PeriodKey.parse(text) for text in self._load_store().periods)
        return sorted(key for key in keys if key is not None)

    def has_period(self, month: Any, year: Any) -> bool:
        return str(self.period_key(month, year)) in self._load_store().periods

    def available_years(self, selected_year: Optional[int] = None) -> list[int]:
        """Years worth offering in a picker: around today, the selection, and any with data."""
        current_year = self._clock().year
        years = {current_year - 1, current_year, current_year + 1}
        if selected_year is not None:
            years.add(self.period_key(0, selected_year).year)
        years.update(key.year for key in self.list_periods())
        return sorted(years)

    def ensure_period(self, month: Any, year: Any) -> BudgetPeriod:
        """
        Return the period, creating it with default categories if absent.

        Writes exactly once, on creation.
        """
        key = self.period_key(month, year)
        store = self._load_store()
        period = store.periods.get(str(key))
        if period is not None:
            return period

        period = default_budget_period(key)
        store.periods[str(key)] = period
        self._save_store(store)
        self._audit.log_period_created(str(key))
        return period

    def get_period(self, month: Any, year: Any) -> BudgetPeriod:
        """Read-only. Absent periods come back as unsaved defaults."""
        return self.get_period_by_key(self.period_key(month, year))

    def get_period_by_key(self, key: PeriodKey) -> BudgetPeriod:
        return self._get_from(self._load_store(), key)

    def reset_period(self, month: Any, year: Any) -> BudgetPeriod:
        """Restore the default category set and clear notes."""
        key = self.period_key(month, year)
        store = self._load_store()
        period = self._save_period(store, default_budget_period(key))
        self._audit.log_period_reset(str(key))
        return period

    def copy_period(
        self,
        source_month: Any,
        source_year: Any,
        target_month: Any,
        target_year: Any,
        include_notes: bool = False,
    ) -> BudgetPeriod:
        """
        Replace the target period with a copy of the source period.

        This REPLACES the target entirely; it never merges. Callers should
        confirm with the user before calling it on a period that has data.
        Copied categories get fresh ids, so editing the copy never touches
        the source.

        Raises:
            NotFoundError: If the source period has never been created
            StorageError: If the write fails
        """
        source_key = self.period_key(source_month, source_year)
        target_key = self.period_key(target_month, target_year)
        store = self._load_store()

        source = store.periods.get(str(source_key))
        if source is None:
            raise NotFoundError(
                f"Budget period {source_key} does not exist",
                field="source",
            )

        target = BudgetPeriod(
            key=str(target_key),
            notes=source.notes if include_notes else "",
            categories=[
                category.model_copy(update={"id": generate_id()})
                for category in source.categories
            ],
        )
        target = self._save_period(store, target)
        self._audit.log_period_copied(
            str(source_key), str(target_key), include_notes, len(target.categories)
        )
        return target

    def replace_store(self, raw: Any) -> BudgetsStore:
        """Normalize ``raw`` as a whole store and overwrite (used by import)."""
        store = self._normalize_store(raw)
        self._save_store(store)
        return store

    def import_legacy_budget(self, raw: Any, key: PeriodKey) -> BudgetsStore:
        """Replace the store with a single period built from a legacy blob."""
        store = BudgetsStore()
        store.periods[str(key)] = normalize_budget_period(raw, key, self._max_categories)
        self._save_store(store)
        return store

    # =========================================================================
    # NOTES
    # =========================================================================

    def get_notes(self, month: Any, year: Any) -> str:
        return self.get_period(month, year).notes

    def set_notes(self, month: Any, year: Any, notes: Any) -> BudgetPeriod:
        """Safe to call on every keystroke; no debouncing happens here."""
        key = self.period_key(month, year)
        store = self._load_store()
        period = self._get_from(store, key)
        period = self._save_period(
            store, period.model_copy(update={"notes": normalize_notes(notes)})
        )
        self._audit.log_notes_updated(str(key), len(period.notes))
        return period

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def get_categories(self, month: Any, year: Any) -> list[BudgetCategory]:
        return self.get_period(month, year).categories

    def categories_by_type(self, month: Any, year: Any, category_type: Any) -> list[BudgetCategory]:
        safe_type = normalize_budget_type(category_type, None)
        if safe_type is None:
            return []
        return [c for c in self.get_categories(month, year) if c.type == safe_type]

    def add_category(self, month: Any, year: Any, category: Any) -> BudgetCategory:
        """
        Append a normalized category to the period.

        A caller-supplied id that already exists in the period is replaced
        with a fresh one.

        Raises:
            CapacityError: If the period already holds the maximum number of categories
            StorageError: If the write fails
        """
        key = self.period_key(month, year)
        store = self._load_store()
        period = self._get_from(store, key)

        if len(period.categories) >= self._max_categories:
            self._audit.log_category_rejected(
                str(key), CapacityError.code, "category limit reached"
            )
            raise CapacityError(
                f"A budget period can hold at most {self._max_categories} categories",
            )

        if isinstance(category, BudgetCategory):
            category = category.to_storage()
        new_category = normalize_budget_category(category, len(period.categories))

        existing_ids = {c.id for c in period.categories}
        while new_category.id in existing_ids:
            new_category = new_category.model_copy(update={"id": generate_id()})

        self._save_period(
            store,
            period.model_copy(update={"categories": [*period.categories, new_category]}),
        )
        self._audit.log_category(
            AuditEventType.CATEGORY_ADDED,
            str(key),
            new_category.id,
            name=new_category.name,
            type=new_category.type.value,
        )
        return new_category

    def update_category_field(
        self,
        month: Any,
        year: Any,
        category_id: Any,
        field: str,
        value: Any,
    ) -> BudgetCategory:
        """
        Set one editable field (name, planned, actual or color).

        The value is normalized: amounts are clamped to 0..1e9 with 2
        decimals, names title-cased and capped, and an invalid color or
        empty name keeps the current value.

        Raises:
            ValidationError: If ``field`` is not editable
            NotFoundError: If the category does not exist in the period
            StorageError: If the write fails
        """
        key = self.period_key(month, year)
        if field not in EDITABLE_FIELDS:
            self._audit.log_category_rejected(str(key), "invalid_field", f"field {field!r}")
            raise ValidationError(
                f"Field '{field}' cannot be edited",
                code="invalid_field",
                field=field,
            )

        safe_id = sanitize_text(category_id, max_length=64)
        store = self._load_store()
        period = self._get_from(store, key)
        category = period.find_category(safe_id) if safe_id else None
        if category is None:
            raise NotFoundError(f"Budget category '{safe_id}' not found in {key}", field="id")

        if field in ("planned", "actual"):
            new_value = normalize_amount(value)
        elif field == "name":
            new_value = normalize_category_name(value, category.name)
        else:
            new_value = normalize_hex_color(value, category.color)

        updated = category.model_copy(update={field: new_value})
        self._save_period(
            store,
            period.model_copy(update={
                "categories": [updated if c.id == safe_id else c for c in period.categories]
            }),
        )
        self._audit.log_category(
            AuditEventType.CATEGORY_UPDATED, str(key), safe_id, field=field
        )
        return updated

    def delete_category(self, month: Any, year: Any, category_id: Any) -> BudgetCategory:
        """
        Remove a category by id.

        Raises:
            NotFoundError: If no category has that id (nothing was changed)
            StorageError: If the write fails
        """
        key = self.period_key(month, year)
        safe_id = sanitize_text(category_id, max_length=64)
        store = self._load_store()
        period = self._get_from(store, key)
        category = period.find_category(safe_id) if safe_id else None
        if category is None:
            raise NotFoundError(f"Budget category '{safe_id}' not found in {key}", field="id")

        self._save_period(
            store,
            period.model_copy(update={
                "categories": [c for c in period.categories if c.id != safe_id]
            }),
        )
        self._audit.log_category(AuditEventType.CATEGORY_DELETED, str(key), safe_id)
        return category


__all__ = ["BudgetPeriodStore", "EDITABLE_FIELDS"]
