"""
Shared rounding and offer-level defaults.

Every monetary value of an offer goes through round2() at the step where it
is derived, never only at display time. round2 rounds half up on the scaled
value, so 0.125 -> 0.13 and -0.125 -> -0.12.
"""

import math

DEFAULT_MARGIN_PCT = 15.0
DEFAULT_TAX_PCT = 19.0
DEFAULT_CURRENCY = "EUR"


def round2(value: float) -> float:
    """Round to 2 decimal places, half up."""
    return math.floor(value * 100 + 0.5) / 100


def percent_of(base: float, pct: float) -> float:
    """pct percent of base, rounded."""
    return round2((base * pct) / 100)


def resolve_pct(value, default: float) -> float:
    """Use the given percentage, or the default when it was omitted."""
    return default if value is None else value


def format_amount(amount, currency: str = DEFAULT_CURRENCY) -> str:
    """Format a money value for display, always with 2 decimals."""
    return f"{float(amount):,.2f} {currency}"


def format_number(value: float) -> str:
    """Shortest text for a number, without a trailing '.0' (66.8, 20, 8.35)."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text
