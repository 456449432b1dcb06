"""
Preference Models

A single process-wide preferences record: display currency, theme,
and the currently selected (month, year) viewing window.
"""

from enum import Enum

from pydantic import BaseModel, Field

from budget_ledger.models.base import RecordModel


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class UIThemePreset(str, Enum):
    """Visual presets layered on top of the light/dark theme."""
    DEFAULT = "default"
    CORPORATE = "corporate"
    WARM = "warm"
    MIDNIGHT = "midnight"


class CurrencyInfo(BaseModel):
    """A supported display currency. No conversion is ever performed."""
    code: str
    symbol: str
    name: str


SUPPORTED_CURRENCIES: tuple[CurrencyInfo, ...] = (
    CurrencyInfo(code="USD", symbol="$", name="US Dollar"),
    CurrencyInfo(code="EUR", symbol="EUR", name="Euro"),
    CurrencyInfo(code="GBP", symbol="GBP", name="British Pound"),
    CurrencyInfo(code="JPY", symbol="JPY", name="Japanese Yen"),
    CurrencyInfo(code="CNY", symbol="CNY", name="Chinese Yuan"),
    CurrencyInfo(code="INR", symbol="INR", name="Indian Rupee"),
    CurrencyInfo(code="NGN", symbol="NGN", name="Nigerian Naira"),
    CurrencyInfo(code="BRL", symbol="BRL", name="Brazilian Real"),
    CurrencyInfo(code="KRW", symbol="KRW", name="South Korean Won"),
    CurrencyInfo(code="AUD", symbol="AUD", name="Australian Dollar"),
    CurrencyInfo(code="CAD", symbol="CAD", name="Canadian Dollar"),
    CurrencyInfo(code="CHF", symbol="CHF", name="Swiss Franc"),
    CurrencyInfo(code="MXN", symbol="MXN", name="Mexican Peso"),
    CurrencyInfo(code="ZAR", symbol="ZAR", name="South African Rand"),
)

SUPPORTED_CURRENCY_CODES = frozenset(c.code for c in SUPPORTED_CURRENCIES)


class Preferences(RecordModel):
    """
    User preferences.

    Always fully populated: missing or malformed persisted fields are
    replaced by defaults during normalization.
    """
    currency: str = Field(default="USD", min_length=3, max_length=3)
    theme: Theme = Theme.LIGHT
    ui_theme_preset: UIThemePreset = UIThemePreset.DEFAULT
    selected_month: int = Field(..., ge=0, le=11)
    selected_year: int
