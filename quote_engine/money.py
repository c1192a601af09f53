"""
Money Helpers

One rounding rule for every payable, contract and summary amount.
All values are Decimal internally; floats only appear at the JSON edge.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')


def to_decimal(value) -> Decimal:
    """Convert a JSON number/string (or None) to Decimal. None becomes 0."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def optional_decimal(value) -> Decimal | None:
    """Like to_decimal but keeps None (absent) distinct from zero."""
    if value is None or value == "":
        return None
    return to_decimal(value)


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return float(quantize_money(value))


def format_money(value) -> str:
    """Format an amount as a currency string, e.g. $1,234.57."""
    amount = quantize_money(to_decimal(value))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def ratio(value: Decimal) -> Decimal:
    """
    Normalize a configured rate: 5 means 5%, 0.05 also means 5%.

    Values up to and including 1 are fractions, so 1 means 100% and
    1% must be written as 0.01. Values above 1 are percentages.
    """
    value = to_decimal(value)
    return value / HUNDRED if value > 1 else value
