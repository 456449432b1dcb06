"""
Validation package.

``normalizer`` holds the total value-level functions. Record-level
normalizers live in ``budget_ledger.validation.records`` and are imported
from there directly, since they depend on the models package.
"""

from budget_ledger.validation.normalizer import (
    DEFAULT_COLOR,
    clamp_number,
    escape_for_display,
    generate_id,
    is_valid_calendar_date,
    normalize_hex_color,
    normalize_id,
    normalize_month,
    normalize_year,
    round_currency,
    sanitize_text,
    title_case,
    utc_timestamp,
)

__all__ = [
    "DEFAULT_COLOR",
    "clamp_number",
    "escape_for_display",
    "generate_id",
    "is_valid_calendar_date",
    "normalize_hex_color",
    "normalize_id",
    "normalize_month",
    "normalize_year",
    "round_currency",
    "sanitize_text",
    "title_case",
    "utc_timestamp",
]
