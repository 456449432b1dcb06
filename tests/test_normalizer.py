"""
Tests for value and record normalization.

Normalizers are total: any input yields a bounded value of the right
type. These tests feed them corrupted, hand-edited and hostile blobs.
"""

import math
from datetime import date

import pytest

from budget_ledger.models.budget import CategoryType, PeriodKey
from budget_ledger.models.ledger import TransactionType
from budget_ledger.models.preferences import Theme, UIThemePreset
from budget_ledger.validation import (
    clamp_number,
    escape_for_display,
    is_valid_calendar_date,
    normalize_hex_color,
    normalize_id,
    normalize_month,
    normalize_year,
    round_currency,
    sanitize_text,
    title_case,
)
from budget_ledger.validation.records import (
    default_budget_categories,
    normalize_budget_category,
    normalize_budget_period,
    normalize_budgets_store,
    normalize_preferences,
    normalize_transaction,
    normalize_transaction_categories,
    normalize_transactions,
    to_wire_keys,
)


TODAY = date(2026, 3, 15)


class TestNumbers:
    """Tests for numeric coercion."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (12.345, 12.35),
            (0.005, 0.01),
            ("19.999", 20.0),
            ("12.5abc", 12.5),
            (-2.5, -2.5),
        ],
    )
    def test_round_currency(self, raw, expected):
        """Test half-up rounding to cents."""
        assert round_currency(raw) == expected

    def test_round_currency_non_numeric(self):
        """Test that junk rounds to zero."""
        assert round_currency("abc") == 0.0
        assert round_currency(None) == 0.0
        assert round_currency(math.nan) == 0.0

    def test_clamp_number_bounds(self):
        """Test clamping into a range."""
        assert clamp_number(-5, min_value=0, max_value=10) == 0
        assert clamp_number(50, min_value=0, max_value=10) == 10
        assert clamp_number("7.126", min_value=0, max_value=10) == 7.13

    @pytest.mark.parametrize("raw", [None, "abc", math.inf, -math.inf, math.nan, True, [1], {}])
    def test_clamp_number_fallback(self, raw):
        """Test that non-finite or unparseable values use the fallback."""
        assert clamp_number(raw, fallback=3.0) == 3.0


class TestText:
    """Tests for text sanitization."""

    def test_sanitize_text_strips_control_chars(self):
        """Test that control characters and whitespace runs collapse."""
        assert sanitize_text("  Rent\x00\n\t  money  ") == "Rent money"

    def test_sanitize_text_truncates(self):
        """Test truncation and fallback."""
        assert sanitize_text("a" * 100, max_length=40) == "a" * 40
        assert sanitize_text("   ", fallback="Item") == "Item"
        assert sanitize_text(None, fallback="x") == "x"

    def test_sanitize_text_keeps_ends_when_not_trimming(self):
        """Test that trim=False keeps leading/trailing spaces (for notes)."""
        assert sanitize_text(" note ", trim=False) == " note "

    def test_title_case(self):
        """Test title-casing of category names."""
        assert title_case("dining OUT") == "Dining Out"
        assert title_case("") == ""

    def test_escape_for_display(self):
        """Test that markup is neutralized."""
        assert escape_for_display('<b>"x"</b>') == "&lt;b&gt;&quot;x&quot;&lt;/b&gt;"

    def test_hex_color(self):
        """Test the #rrggbb allow-list."""
        assert normalize_hex_color("#ABCDEF") == "#abcdef"
        assert normalize_hex_color("red") == "#4299e1"
        assert normalize_hex_color("#abc", "#000000") == "#000000"
        assert normalize_hex_color("javascript:alert(1)") == "#4299e1"


class TestDatesAndIds:
    """Tests for dates, months, years and ids."""

    @pytest.mark.parametrize(
        "raw, valid",
        [
            ("2026-02-28", True),
            ("2024-02-29", True),
            ("2026-02-29", False),
            ("2026-13-01", False),
            ("2026-1-01", False),
            ("not a date", False),
            (20260101, False),
        ],
    )
    def test_is_valid_calendar_date(self, raw, valid):
        """Test that only real calendar days pass."""
        assert is_valid_calendar_date(raw) is valid

    def test_normalize_month(self):
        """Test month clamping and defaulting."""
        assert normalize_month(14, today=TODAY) == 11
        assert normalize_month(-1, today=TODAY) == 0
        assert normalize_month("5", today=TODAY) == 5
        assert normalize_month("x", today=TODAY) == 2

    def test_normalize_year(self):
        """Test year clamping to the window around today."""
        assert normalize_year(1800, today=TODAY) == 2001
        assert normalize_year(3000, today=TODAY) == 2051
        assert normalize_year(None, today=TODAY) == 2026
        assert normalize_year(2030, today=TODAY, window=2) == 2028

    def test_normalize_id(self):
        """Test id sanitizing and generation."""
        assert normalize_id("abc") == "abc"
        assert len(normalize_id("x" * 100)) == 64
        generated = normalize_id("")
        assert generated and generated != normalize_id("")


class TestBudgetRecords:
    """Tests for budget category and period normalization."""

    def test_category_from_garbage(self):
        """Test that any value becomes a valid category."""
        category = normalize_budget_category("garbage", index=2)
        assert category.name == "Item 3"
        assert category.type == CategoryType.VARIABLE
        assert category.planned == 0.0
        assert category.id

    def test_category_bounds(self):
        """Test amount clamping, name title-casing and type color defaults."""
        category = normalize_budget_category({
            "id": "c1",
            "name": "  weekly   GROCERIES  " + "x" * 60,
            "type": "savings",
            "planned": 5e12,
            "actual": -20,
            "color": "nope",
        })
        assert category.planned == 1_000_000_000
        assert category.actual == 0.0
        assert len(category.name) == 40
        assert category.name.startswith("Weekly Groceries")
        assert category.color == "#3b82f6"

    def test_unknown_type_falls_back_to_variable(self):
        """Test that an unknown category type defaults to variable."""
        assert normalize_budget_category({"type": "luxury"}).type == CategoryType.VARIABLE

    def test_default_categories(self):
        """Test the default set covers every type with unique ids."""
        defaults = default_budget_categories()
        assert len(defaults) == 20
        assert {c.type for c in defaults} == set(CategoryType)
        assert len({c.id for c in defaults}) == 20

    def test_period_missing_categories_gets_defaults(self):
        """Test that a period without a categories list gets the default set."""
        key = PeriodKey(year=2026, month=2)
        period = normalize_budget_period({"notes": "hi"}, key)
        assert len(period.categories) == 20
        assert period.notes == "hi"
        assert period.key == "2026-03"

    def test_period_explicit_empty_list_stays_empty(self):
        """Test that a user who deleted every category keeps an empty period."""
        period = normalize_budget_period({"categories": []}, PeriodKey(year=2026, month=2))
        assert period.categories == []

    def test_period_dedupes_and_caps(self):
        """Test duplicate id regeneration and the category cap."""
        raw = {"categories": [{"id": "same", "name": f"C{i}"} for i in range(250)]}
        period = normalize_budget_period(raw, PeriodKey(year=2026, month=2), max_categories=200)
        assert len(period.categories) == 200
        assert len({c.id for c in period.categories}) == 200
        assert period.categories[0].id == "same"

    def test_notes_truncated(self):
        """Test the 1000 character notes cap."""
        period = normalize_budget_period(
            {"notes": "n" * 5000, "categories": []}, PeriodKey(year=2026, month=2)
        )
        assert len(period.notes) == 1000

    def test_store_drops_invalid_keys(self):
        """Test that only well-formed YYYY-MM keys survive."""
        store = normalize_budgets_store({
            "version": 1,
            "periods": {
                "2026-03": {"categories": []},
                "2026-13": {"categories": []},
                "march": {},
            },
        })
        assert list(store.periods) == ["2026-03"]
        assert store.version == 2

    @pytest.mark.parametrize("raw", [None, [], "x", {"periods": []}])
    def test_store_from_garbage(self, raw):
        """Test that a corrupt store reads as empty."""
        assert normalize_budgets_store(raw).periods == {}

    def test_store_year_window(self):
        """Test that a window drops periods too far from today."""
        raw = {"periods": {"2020-05": {}, "1999-05": {}, "2090-01": {}}}
        store = normalize_budgets_store(raw, today=date(2026, 3, 15), window=25)
        assert list(store.periods) == ["2020-05"]
        assert len(normalize_budgets_store(raw).periods) == 3


class TestTransactionRecords:
    """Tests for transaction normalization."""

    def _raw(self, **overrides):
        raw = {
            "id": "t1",
            "amount": 25,
            "type": "expense",
            "category": "food",
            "description": "Lunch",
            "date": "2026-03-02",
        }
        raw.update(overrides)
        return raw

    def test_valid_transaction(self):
        """Test a well-formed record."""
        transaction = normalize_transaction(self._raw())
        assert transaction.amount == 25.0
        assert transaction.type == TransactionType.EXPENSE
        assert transaction.category == "Food"
        assert transaction.created_at

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": "transfer"},
            {"date": "2026-02-30"},
            {"amount": 0},
            {"amount": -5},
            {"amount": "abc"},
        ],
    )
    def test_unrecoverable_records_dropped(self, overrides):
        """Test that records without a valid type, date or amount are dropped."""
        assert normalize_transaction(self._raw(**overrides)) is None

    def test_defaults_and_optional_fields(self):
        """Test fallback category/description and snake_case input."""
        transaction = normalize_transaction(self._raw(
            category="",
            description=None,
            budget_category_id="var-1",
            budget_type="variable",
        ))
        assert transaction.category == "Other"
        assert transaction.description == "Transaction"
        assert transaction.budget_category_id == "var-1"
        assert transaction.budget_type == CategoryType.VARIABLE

    def test_list_drops_bad_and_dedupes(self):
        """Test list normalization."""
        transactions = normalize_transactions([
            self._raw(),
            self._raw(),
            self._raw(amount=0),
            "junk",
        ])
        assert len(transactions) == 2
        assert transactions[0].id == "t1"
        assert transactions[1].id != "t1"

    def test_non_list_is_empty(self):
        """Test that a corrupt ledger reads as empty."""
        assert normalize_transactions({"a": 1}) == []

    def test_transaction_categories_default(self):
        """Test that a non-list yields the default flat categories."""
        defaults = normalize_transaction_categories(None)
        assert len(defaults) == 11
        assert normalize_transaction_categories([]) == []
        assert normalize_transaction_categories([{"name": "x", "type": "income"}])[0].color == "#22c55e"


class TestPreferenceRecords:
    """Tests for preference normalization."""

    def test_defaults(self):
        """Test that nothing stored yields the defaults for today."""
        prefs = normalize_preferences(None, today=TODAY)
        assert prefs.currency == "USD"
        assert prefs.theme == Theme.LIGHT
        assert prefs.ui_theme_preset == UIThemePreset.DEFAULT
        assert prefs.selected_month == 2
        assert prefs.selected_year == 2026

    def test_each_field_falls_back_independently(self):
        """Test that one bad field does not reset the others."""
        prefs = normalize_preferences(
            {
                "currency": "xyz",
                "theme": "dark",
                "uiThemePreset": "neon",
                "selectedMonth": "7",
                "selectedYear": 1900,
            },
            today=TODAY,
        )
        assert prefs.currency == "USD"
        assert prefs.theme == Theme.DARK
        assert prefs.ui_theme_preset == UIThemePreset.DEFAULT
        assert prefs.selected_month == 7
        assert prefs.selected_year == 2001

    def test_to_wire_keys(self):
        """Test snake_case to camelCase key rewriting."""
        assert to_wire_keys({"selected_month": 1, "theme": "dark"}) == {
            "selectedMonth": 1,
            "theme": "dark",
        }
        assert to_wire_keys(None) == {}
