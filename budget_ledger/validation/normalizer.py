"""
Value Normalizer

Pure functions that coerce arbitrary input into bounded, typed values.
Every function here is total: it never raises and always returns a value
of the promised type, so it is safe to run over persisted blobs that may
be corrupted, hand-edited or written by an older schema.

Used by every record normalizer and every store. Has no dependencies
on the rest of the package.
"""

import html
import math
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional
from uuid import uuid4


DEFAULT_COLOR = "#4299e1"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RUN = re.compile(r"\s+")
_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_TITLE_WORD = re.compile(r"\w\S*")
_CENT = Decimal("0.01")


# =============================================================================
# NUMBERS
# =============================================================================

def _parse_float(raw: Any) -> Optional[float]:
    """
    Parse a number the way form fields are read.

    Strings are read up to the first non-numeric character ("12.5abc" -> 12.5).
    Booleans, containers and unparseable text yield None.
    """
    if isinstance(raw, bool):
        return None
    try:
        if isinstance(raw, (int, float, Decimal)):
            return float(raw)
        if isinstance(raw, str):
            match = _LEADING_FLOAT.match(raw)
            return float(match.group(1)) if match else None
    except (OverflowError, ValueError, InvalidOperation):
        return None
    return None


def _parse_int(raw: Any) -> Optional[int]:
    """Parse an integer, truncating floats and reading a leading digit run."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    if isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        return int(match.group(1)) if match else None
    return None


def round_currency(value: Any) -> float:
    """Round to 2 decimal places (half-up). Non-numeric input becomes 0."""
    parsed = _parse_float(value)
    if parsed is None or not math.isfinite(parsed):
        return 0.0
    try:
        rounded = Decimal(repr(parsed)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # beyond Decimal precision; no cents left to round
        return parsed
    return float(rounded) + 0.0  # no negative zero


def clamp_number(
    raw: Any,
    fallback: float = 0.0,
    min_value: float = -math.inf,
    max_value: float = math.inf,
) -> float:
    """
    Coerce ``raw`` to a currency-safe number within ``[min_value, max_value]``.

    Non-finite or unparseable input yields ``fallback`` unchanged.
    """
    parsed = _parse_float(raw)
    if parsed is None or not math.isfinite(parsed):
        return fallback
    return min(max(round_currency(parsed), min_value), max_value)


# =============================================================================
# TEXT
# =============================================================================

def sanitize_text(
    raw: Any,
    max_length: int = 80,
    fallback: str = "",
    trim: bool = True,
) -> str:
    """
    Clean free text for storage.

    Control characters become spaces, whitespace runs collapse to a single
    space, ends are optionally trimmed and the result is truncated to
    ``max_length`` (0 disables truncation). Empty results yield ``fallback``.
    """
    text = "" if raw is None else str(raw)
    text = _CONTROL_CHARS.sub(" ", text)
    text = _WHITESPACE_RUN.sub(" ", text)
    if trim:
        text = text.strip()
    if max_length > 0:
        text = text[:max_length]
    return text or fallback


def title_case(raw: Any) -> str:
    """Upper-case the first letter of each word and lower-case the rest."""
    if not raw:
        return ""
    return _TITLE_WORD.sub(
        lambda match: match.group(0)[0].upper() + match.group(0)[1:].lower(),
        str(raw),
    )


def escape_for_display(raw: Any) -> str:
    """Neutralize markup-significant characters before rendering."""
    return html.escape("" if raw is None else str(raw), quote=True)


def normalize_hex_color(raw: Any, fallback: str = DEFAULT_COLOR) -> str:
    """Accept only ``#rrggbb`` (any case); return it lower-cased or ``fallback``."""
    color = "" if raw is None else str(raw).strip()
    return color.lower() if _HEX_COLOR.match(color) else fallback


# =============================================================================
# DATES AND PERIODS
# =============================================================================

def is_valid_calendar_date(raw: Any) -> bool:
    """True only for ``YYYY-MM-DD`` strings naming a real calendar day."""
    if not isinstance(raw, str) or not _ISO_DATE.match(raw):
        return False
    try:
        return date.fromisoformat(raw).isoformat() == raw
    except ValueError:
        return False


def normalize_month(raw: Any, today: Optional[date] = None) -> int:
    """Clamp a zero-based month to 0..11; unparseable input means this month."""
    parsed = _parse_int(raw)
    if parsed is None:
        return (today or date.today()).month - 1
    return min(11, max(0, parsed))


def normalize_year(raw: Any, today: Optional[date] = None, window: int = 25) -> int:
    """Clamp a year to current year +/- ``window``; unparseable input means this year."""
    current_year = (today or date.today()).year
    parsed = _parse_int(raw)
    if parsed is None:
        return current_year
    return min(current_year + window, max(current_year - window, parsed))


# =============================================================================
# IDENTIFIERS
# =============================================================================

def generate_id() -> str:
    """Generate a unique record id (UUID4)."""
    return str(uuid4())


def utc_timestamp() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


def normalize_id(raw: Any, fallback: Optional[str] = None) -> str:
    """Sanitize an id to at most 64 characters, generating one when empty."""
    return sanitize_text(raw, max_length=64, fallback="") or fallback or generate_id()
