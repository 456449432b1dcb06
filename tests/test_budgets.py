"""
Tests for the budget period store.

Covers migration, period isolation, copy/reset semantics, the category
capacity limit and id uniqueness.
"""

import pytest

from budget_ledger.errors import CapacityError, NotFoundError, ValidationError
from budget_ledger.models.budget import PeriodKey
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.storage import InMemoryStorage, StorageError, StorageKeys


LEGACY_BUDGET = {
    "notes": "old notes",
    "categories": [
        {"id": "inc-1", "name": "Salary", "type": "income", "planned": 4000, "actual": 4000},
        {"id": "rent", "name": "Rent", "type": "fixed", "planned": 1500, "actual": 1500},
    ],
}


class TestMigration:
    """Tests for the lazy legacy migration."""

    def test_legacy_budget_becomes_selected_period(self, storage, preferences, budgets):
        """Test that a legacy blob lands in the selected period."""
        storage.set(StorageKeys.LEGACY_BUDGET, LEGACY_BUDGET)
        preferences.set_selected_period(PeriodKey(year=2025, month=10))

        assert [str(k) for k in budgets.list_periods()] == ["2025-11"]
        period = budgets.get_period(10, 2025)
        assert period.notes == "old notes"
        assert [c.id for c in period.categories] == ["inc-1", "rent"]
        assert storage.get(StorageKeys.BUDGETS)["version"] == 2

    def test_legacy_blob_kept(self, storage, budgets):
        """Test that migration never deletes the legacy key."""
        storage.set(StorageKeys.LEGACY_BUDGET, LEGACY_BUDGET)
        budgets.list_periods()
        assert storage.get(StorageKeys.LEGACY_BUDGET) == LEGACY_BUDGET

    def test_migration_idempotent(self, storage, preferences, budgets, audit):
        """Test that a second load produces the same store and migrates once."""
        storage.set(StorageKeys.LEGACY_BUDGET, LEGACY_BUDGET)
        first = budgets.snapshot()
        preferences.set_selected_month(7)
        second = budgets.snapshot()

        assert first == second
        assert audit.types().count("legacy_budget_migrated") == 1

    def test_existing_store_wins(self, storage, budgets):
        """Test that an existing multi-period store ignores the legacy blob."""
        storage.set(StorageKeys.BUDGETS, {"version": 2, "periods": {"2026-01": {"categories": []}}})
        storage.set(StorageKeys.LEGACY_BUDGET, LEGACY_BUDGET)
        assert [str(k) for k in budgets.list_periods()] == ["2026-01"]

    def test_nothing_to_migrate(self, storage, budgets):
        """Test that an empty install gets an empty versioned store."""
        assert budgets.list_periods() == []
        assert storage.get(StorageKeys.BUDGETS) == {"version": 2, "periods": {}}

    def test_migration_write_failure_is_not_fatal(self, storage, budgets):
        """Test that reads still work when the migration cannot be saved."""
        storage.set(StorageKeys.LEGACY_BUDGET, LEGACY_BUDGET)
        storage.fail_writes = True
        assert len(budgets.get_period(2, 2026).categories) == 2
        assert storage.get(StorageKeys.BUDGETS) is None

        storage.fail_writes = False
        budgets.list_periods()
        assert storage.get(StorageKeys.BUDGETS) is not None


class TestPeriods:
    """Tests for period lifecycle."""

    def test_get_period_does_not_write(self, storage, budgets):
        """Test that reading an absent period returns unsaved defaults."""
        period = budgets.get_period(4, 2026)
        assert period.key == "2026-05"
        assert len(period.categories) == 20
        assert not budgets.has_period(4, 2026)

    def test_ensure_period_writes_once(self, storage, budgets, audit):
        """Test that ensure_period creates on first call only."""
        budgets.list_periods()
        writes = storage.write_count
        first = budgets.ensure_period(4, 2026)
        second = budgets.ensure_period(4, 2026)

        assert storage.write_count == writes + 1
        assert first == second
        assert first.updated_at is None
        assert audit.types().count("period_created") == 1

    def test_period_isolation(self, budgets):
        """Test that mutating one period leaves every other period unchanged."""
        budgets.ensure_period(0, 2026)
        budgets.ensure_period(1, 2026)
        january_before = budgets.get_period(0, 2026)

        budgets.add_category(1, 2026, {"name": "Gym", "type": "fixed", "planned": 40})
        budgets.update_category_field(1, 2026, "var-1", "planned", 300)
        budgets.delete_category(1, 2026, "fix-1")
        budgets.set_notes(1, 2026, "february")

        assert budgets.get_period(0, 2026) == january_before

    def test_list_periods_sorted(self, budgets):
        """Test calendar ordering of period keys."""
        budgets.ensure_period(0, 2027)
        budgets.ensure_period(11, 2025)
        budgets.ensure_period(5, 2026)
        assert [str(k) for k in budgets.list_periods()] == ["2025-12", "2026-06", "2027-01"]

    def test_available_years(self, budgets):
        """Test that years with data and the selection are offered."""
        budgets.ensure_period(0, 2030)
        assert budgets.available_years(selected_year=2020) == [2020, 2025, 2026, 2027, 2030]

    def test_month_year_clamped(self, budgets):
        """Test that out-of-range parts are clamped into a real key."""
        assert str(budgets.ensure_period(99, 2026).period_key) == "2026-12"

    def test_reset_period(self, budgets, audit):
        """Test that reset restores defaults and clears notes."""
        budgets.ensure_period(2, 2026)
        budgets.set_notes(2, 2026, "notes")
        budgets.delete_category(2, 2026, "inc-1")

        period = budgets.reset_period(2, 2026)
        assert period.notes == ""
        assert len(period.categories) == 20
        assert period.updated_at is not None
        assert "period_reset" in audit.types()


class TestCopyPeriod:
    """Tests for copying one period onto another."""

    def test_copy_replaces_target(self, budgets):
        """Test that the target is replaced, not merged."""
        budgets.ensure_period(0, 2026)
        budgets.set_notes(0, 2026, "january notes")
        budgets.update_category_field(0, 2026, "var-1", "planned", 450)
        budgets.ensure_period(1, 2026)
        budgets.add_category(1, 2026, {"name": "Only In February"})

        copied = budgets.copy_period(0, 2026, 1, 2026)

        assert copied.key == "2026-02"
        assert copied.notes == ""
        assert len(copied.categories) == 20
        assert "Only In February" not in [c.name for c in copied.categories]
        assert next(c for c in copied.categories if c.name == "Groceries").planned == 450

    def test_copy_includes_notes_when_asked(self, budgets):
        """Test the include_notes flag."""
        budgets.ensure_period(0, 2026)
        budgets.set_notes(0, 2026, "carry me")
        assert budgets.copy_period(0, 2026, 1, 2026, include_notes=True).notes == "carry me"

    def test_copy_does_not_alias(self, budgets):
        """Test that editing the copy never changes the source."""
        budgets.ensure_period(0, 2026)
        source_before = budgets.get_period(0, 2026)
        copied = budgets.copy_period(0, 2026, 1, 2026)

        source_ids = {c.id for c in source_before.categories}
        assert source_ids.isdisjoint(c.id for c in copied.categories)

        target_id = copied.categories[0].id
        budgets.update_category_field(1, 2026, target_id, "planned", 999)
        budgets.update_category_field(1, 2026, target_id, "name", "renamed")
        assert budgets.get_period(0, 2026) == source_before

    def test_copy_missing_source(self, budgets):
        """Test that copying from a period that never existed is rejected."""
        with pytest.raises(NotFoundError) as exc_info:
            budgets.copy_period(5, 2020, 1, 2026)
        assert exc_info.value.field == "source"
        assert not budgets.has_period(1, 2026)


class TestNotes:
    """Tests for period notes."""

    def test_notes_round_trip(self, budgets):
        """Test saving and reading notes."""
        budgets.set_notes(2, 2026, " keep my spacing ")
        assert budgets.get_notes(2, 2026) == " keep my spacing "

    def test_notes_capped(self, budgets):
        """Test the notes length cap."""
        budgets.set_notes(2, 2026, "x" * 2000)
        assert len(budgets.get_notes(2, 2026)) == 1000


class TestCategories:
    """Tests for category mutations."""

    def test_add_category_normalizes(self, budgets):
        """Test that added categories are normalized and appended."""
        category = budgets.add_category(2, 2026, {
            "name": "  pet   food ",
            "type": "bogus",
            "planned": "125.456",
            "color": "#ABCDEF",
        })
        assert category.name == "Pet Food"
        assert category.type.value == "variable"
        assert category.planned == 125.46
        assert category.color == "#abcdef"
        assert budgets.get_categories(2, 2026)[-1] == category

    def test_add_category_regenerates_duplicate_id(self, budgets):
        """Test that ids stay unique within a period."""
        category = budgets.add_category(2, 2026, {"id": "inc-1", "name": "Bonus", "type": "income"})
        assert category.id != "inc-1"
        ids = [c.id for c in budgets.get_categories(2, 2026)]
        assert len(ids) == len(set(ids))

    def test_ids_unique_after_many_mutations(self, budgets):
        """Test id uniqueness across adds, copies and resets."""
        for i in range(10):
            budgets.add_category(2, 2026, {"id": "dup", "name": f"Extra {i}"})
        budgets.copy_period(2, 2026, 3, 2026)
        budgets.add_category(3, 2026, {"id": "dup", "name": "Again"})
        for month in (2, 3):
            ids = [c.id for c in budgets.get_categories(month, 2026)]
            assert len(ids) == len(set(ids))

    def test_capacity_limit(self, budgets, audit):
        """Test that a period holds at most 200 categories."""
        budgets.ensure_period(2, 2026)
        for i in range(180):
            budgets.add_category(2, 2026, {"name": f"Extra {i}"})
        assert len(budgets.get_categories(2, 2026)) == 200

        with pytest.raises(CapacityError) as exc_info:
            budgets.add_category(2, 2026, {"name": "One Too Many"})
        assert exc_info.value.code == "capacity_exceeded"
        assert len(budgets.get_categories(2, 2026)) == 200
        assert "category_rejected" in audit.types()

    def test_capacity_from_settings(self, monkeypatch, storage, preferences, clock):
        """Test that the limit is configurable."""
        from budget_ledger.config import get_settings

        monkeypatch.setenv("BUDGET_MAX_CATEGORIES_PER_PERIOD", "21")
        get_settings.cache_clear()
        store = BudgetPeriodStore(storage, preferences, clock=clock)
        store.add_category(2, 2026, {"name": "Twenty First"})
        with pytest.raises(CapacityError):
            store.add_category(2, 2026, {"name": "Twenty Second"})

    def test_update_field_normalizes(self, budgets):
        """Test normalization of each editable field."""
        assert budgets.update_category_field(2, 2026, "var-1", "planned", -50).planned == 0
        assert budgets.update_category_field(2, 2026, "var-1", "actual", 2e9).actual == 1e9
        assert budgets.update_category_field(2, 2026, "var-1", "name", "food  shop").name == "Food Shop"
        assert budgets.update_category_field(2, 2026, "var-1", "name", "   ").name == "Food Shop"
        assert budgets.update_category_field(2, 2026, "var-1", "color", "blue").color == "#f59e0b"

    def test_update_unknown_field(self, budgets):
        """Test that only editable fields can be updated."""
        with pytest.raises(ValidationError) as exc_info:
            budgets.update_category_field(2, 2026, "var-1", "type", "income")
        assert exc_info.value.code == "invalid_field"

    def test_update_missing_category(self, budgets):
        """Test that updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            budgets.update_category_field(2, 2026, "nope", "planned", 1)

    def test_delete_category(self, budgets):
        """Test deletion and the not-found case."""
        removed = budgets.delete_category(2, 2026, "fix-1")
        assert removed.name == "Rent"
        assert budgets.get_period(2, 2026).find_category("fix-1") is None
        with pytest.raises(NotFoundError):
            budgets.delete_category(2, 2026, "fix-1")

    def test_delete_all_then_reload_stays_empty(self, budgets):
        """Test that a period emptied by the user is not refilled with defaults."""
        for category in budgets.get_categories(2, 2026):
            budgets.delete_category(2, 2026, category.id)
        assert budgets.get_categories(2, 2026) == []

    def test_categories_by_type(self, budgets):
        """Test filtering by category type."""
        assert [c.id for c in budgets.categories_by_type(2, 2026, "debt")] == [
            "debt-1", "debt-2", "debt-3", "debt-4"
        ]
        assert budgets.categories_by_type(2, 2026, "bogus") == []

    def test_write_failure_surfaces(self, storage, budgets, audit):
        """Test that a failed write raises and leaves the period unchanged."""
        budgets.ensure_period(2, 2026)
        before = budgets.get_period(2, 2026)
        storage.fail_writes = True
        with pytest.raises(StorageError) as exc_info:
            budgets.add_category(2, 2026, {"name": "Lost"})
        assert exc_info.value.code == "storage_error"
        assert budgets.get_period(2, 2026) == before
        assert "storage_write_failed" in audit.types()


class TestReplaceStore:
    """Tests for the import helpers."""

    def test_replace_store(self, budgets):
        """Test that a raw store replaces everything."""
        budgets.ensure_period(2, 2026)
        store = budgets.replace_store({"periods": {"2024-06": {"categories": [{"name": "a"}]}}})
        assert list(store.periods) == ["2024-06"]
        assert [str(k) for k in budgets.list_periods()] == ["2024-06"]

    def test_out_of_window_periods_dropped(self, budgets):
        """Test that imported periods no month/year selection can reach are not kept."""
        store = budgets.replace_store({"periods": {
            "1990-01": {"categories": []},
            "2001-01": {"categories": []},
            "2051-12": {"categories": []},
            "2052-01": {"categories": []},
        }})
        assert list(store.periods) == ["2001-01", "2051-12"]
        for key in budgets.list_periods():
            assert budgets.has_period(key.month, key.year)

    def test_import_legacy_budget(self, budgets):
        """Test importing a legacy blob into an explicit period."""
        store = budgets.import_legacy_budget(LEGACY_BUDGET, PeriodKey(year=2026, month=0))
        assert list(store.periods) == ["2026-01"]
        assert budgets.get_notes(0, 2026) == "old notes"

    def test_separate_stores_share_storage(self, clock):
        """Test that two store instances see each other's writes."""
        from budget_ledger.services.preferences import PreferenceStore

        shared = InMemoryStorage()
        prefs = PreferenceStore(shared, clock=clock)
        a = BudgetPeriodStore(shared, prefs, clock=clock)
        b = BudgetPeriodStore(shared, prefs, clock=clock)
        a.set_notes(2, 2026, "hello")
        assert b.get_notes(2, 2026) == "hello"
