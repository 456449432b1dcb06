"""
Preference Store

Holds the single process-wide Preferences record: display currency,
theme, UI preset and the selected (month, year) viewing window.

Changing the selection never creates a budget period. Creating a period
on view is the caller's explicit ``ensure_period`` call.
"""

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any, Optional

from budget_ledger.audit import AuditLogger
from budget_ledger.config import get_settings
from budget_ledger.models.budget import PeriodKey
from budget_ledger.models.preferences import (
    SUPPORTED_CURRENCIES,
    CurrencyInfo,
    Preferences,
    Theme,
)
from budget_ledger.services.storage import KeyValueStorageInterface, StorageError, StorageKeys
from budget_ledger.validation.records import (
    normalize_currency,
    normalize_preferences,
    to_wire_keys,
)


class PreferenceStore:
    """Key/value persistence of Preferences with defaulting."""

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        settings = get_settings().budget
        self._storage = storage
        self._audit = audit or AuditLogger()
        self._clock = clock
        self._year_window = settings.year_window
        self._default_currency = settings.default_currency

    def _normalize(self, raw: Any) -> Preferences:
        return normalize_preferences(
            raw,
            today=self._clock(),
            year_window=self._year_window,
            default_currency=self._default_currency,
        )

    def get(self) -> Preferences:
        """Fully defaulted preferences, even from a corrupt or partial blob."""
        return self._normalize(self._storage.get(StorageKeys.PREFERENCES))

    def set(self, partial: Mapping[str, Any]) -> Preferences:
        """
        Merge ``partial`` onto the current preferences and persist.

        Keys may be snake_case or camelCase. Every field is re-validated
        after the merge, so an invalid value falls back independently.

        Raises:
            StorageError: If the write fails
        """
        current = self.get()
        merged = {**current.to_storage(), **to_wire_keys(partial)}
        updated = self._normalize(merged)

        try:
            self._storage.set(StorageKeys.PREFERENCES, updated.to_storage())
        except StorageError as e:
            self._audit.log_storage_write_failed(StorageKeys.PREFERENCES, str(e))
            raise

        changed = [
            name for name in Preferences.model_fields
            if getattr(current, name) != getattr(updated, name)
        ]
        self._audit.log_preferences_saved(changed)
        return updated

    # Theme / currency

    def get_theme(self) -> Theme:
        return self.get().theme

    def set_theme(self, theme: Any) -> Preferences:
        return self.set({"theme": theme})

    def set_ui_theme_preset(self, preset: Any) -> Preferences:
        return self.set({"uiThemePreset": preset})

    def get_currency(self) -> str:
        return self.get().currency

    def set_currency(self, currency: Any) -> Preferences:
        return self.set({"currency": normalize_currency(currency, self._default_currency)})

    def currencies(self) -> list[CurrencyInfo]:
        return list(SUPPORTED_CURRENCIES)

    def currency_info(self, code: Any = None) -> CurrencyInfo:
        """Info for ``code``; unknown codes resolve to the default currency."""
        safe_code = normalize_currency(code, self._default_currency)
        for info in SUPPORTED_CURRENCIES:
            if info.code == safe_code:
                return info
        return SUPPORTED_CURRENCIES[0]

    # Selected period

    def set_selected_month(self, month: Any) -> Preferences:
        return self.set({"selectedMonth": month})

    def set_selected_year(self, year: Any) -> Preferences:
        return self.set({"selectedYear": year})

    def set_selected_period(self, key: PeriodKey) -> Preferences:
        return self.set({"selectedMonth": key.month, "selectedYear": key.year})

    def selected_period(self) -> PeriodKey:
        """The currently selected period, built from live preferences."""
        prefs = self.get()
        return PeriodKey(year=prefs.selected_year, month=prefs.selected_month)

__all__ = ["PreferenceStore"]
