# supplier_inventory/utils/parsing.py
import math
from datetime import date, datetime
from typing import Any, Optional

TRUTHY_VALUES = ('y', 'yes', '1', 'true')

DATE_FORMATS = ('%Y-%m-%d', '%m/%d/%Y', '%Y/%m/%d', '%d.%m.%Y')

def parse_non_negative_number(raw: Any, default: float = 0.0) -> float:
    """Coerce a raw value into a finite, non-negative float.

    Empty, missing, non-numeric and NaN values become ``default``;
    negative values and negative infinity are clamped to 0. Positive
    infinity is kept so that callers can express "never".

    Args:
        raw: Value read from a file, a JSON blob or a form field
        default: Value used when nothing numeric can be read

    Returns:
        Non-negative float
    """
    if raw is None or isinstance(raw, bool):
        return default

    if isinstance(raw, str):
        raw = raw.strip().replace(',', '')
        if raw.startswith('$'):
            raw = raw[1:]
        if not raw:
            return default

    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default

    if math.isnan(value):
        return default

    return max(0.0, value)

def parse_non_negative_int(raw: Any, default: int = 0) -> int:
    """Coerce a raw value into a non-negative integer.

    Fractional values are truncated toward zero, so ``"14.9"`` reads as 14.

    Args:
        raw: Raw value
        default: Value used when nothing numeric can be read

    Returns:
        Non-negative integer
    """
    value = parse_non_negative_number(raw, float(default))
    if math.isinf(value):
        return default
    return int(value)

def parse_int(raw: Any, default: int = 0) -> int:
    """Coerce a raw value into an integer, keeping the sign."""
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return int(value)

def parse_bool(raw: Any) -> bool:
    """Interpret a primary-supplier flag.

    ``y``, ``yes``, ``1`` and ``true`` (any case) are true; everything
    else, including empty values, is false.
    """
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    return str(raw).strip().lower() in TRUTHY_VALUES

def parse_date(raw: Any) -> Optional[date]:
    """Parse an order date, returning None when it cannot be read."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw).strip()
    if not text:
        return None

    # ISO timestamps such as 2024-01-15T00:00:00Z
    if 'T' in text:
        text = text.split('T', 1)[0]

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None

def clean_text(raw: Any) -> str:
    """Return a trimmed string, empty for missing values."""
    if raw is None:
        return ''
    return str(raw).strip()
