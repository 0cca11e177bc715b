"""
ETL helpers for raw estimate data.

Numeric fields arrive from forms and spreadsheet imports as numbers,
numeric strings, currency strings or garbage. All parsing goes through
Decimal so that rate x quantity never picks up float drift.
"""
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

ZERO = Decimal("0")

# Leading currency token, e.g. "KES", "Ksh.", "$"
_CURRENCY_PREFIX = re.compile(r'^(?:[A-Za-z]{1,4}\.?|[$€£])')


def _to_decimal(value) -> Optional[Decimal]:
    """Parse a numeric input, returning None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None

    s = str(value).strip()
    if s == '' or s == '-':
        return None

    # Detect negative (accounting parentheses, leading sign before or after currency)
    negative = False
    if s.startswith('(') and s.endswith(')'):
        negative = True
        s = s[1:-1]

    s = re.sub(r'[\s,]', '', s)
    if s.startswith('-'):
        negative = not negative
        s = s[1:]
    s = _CURRENCY_PREFIX.sub('', s)
    if s.startswith('-'):
        negative = not negative
        s = s[1:]

    if s == '' or s == '.':
        return None

    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return -d if negative else d


def parse_decimal(value: Union[str, float, int, Decimal, None]) -> Decimal:
    """
    Parse a numeric input to Decimal. Never raises.

    Handles:
        "1,200.50"      → Decimal("1200.50")
        "KES 1,200"     → Decimal("1200")
        "(500.00)"      → Decimal("-500.00") (accounting negative)
        5, 2.5          → Decimal("5"), Decimal("2.5")
        None, NaN, ""   → 0
        "-", "abc"      → 0
        True / False    → 0 (booleans are not quantities)

    Returns:
        Decimal value, 0 for anything that is not a finite number
    """
    parsed = _to_decimal(value)
    return ZERO if parsed is None else parsed


def parse_optional_decimal(value) -> Optional[Decimal]:
    """
    Parse a field whose absence is meaningful.

    None, empty and non-numeric input give None so that callers can fall
    back to a derived figure.
    """
    return _to_decimal(value)


def parse_text(value) -> str:
    """Coerce ids and labels to str; None becomes ''."""
    if value is None:
        return ''
    return str(value).strip()


def amount_to_display(amount: Decimal, currency: Optional[dict] = None) -> str:
    """Format a Decimal amount as a currency display string."""
    currency = currency or {}
    symbol = currency.get("symbol", "KES")
    places = int(currency.get("decimal_places", 2))
    separator = currency.get("thousands_separator", ",")

    formatted = f"{abs(amount):,.{places}f}"
    if separator != ",":
        formatted = formatted.replace(",", separator)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {formatted}"
