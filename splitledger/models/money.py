"""
Money Helpers

All ledger arithmetic happens on integer minor units (cents, paise, ...).
Decimal is used only at the edges: converting caller input into minor
units and rendering minor units for display.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union


# Currencies whose minor unit is not 1/100 of the major unit
_ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW", "VND", "CLP", "ISK"}
_THREE_DECIMAL_CURRENCIES = {"BHD", "KWD", "OMR", "JOD", "TND"}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "C$",
}


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places in one major unit of ``currency``."""
    code = currency.upper()
    if code in _ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in _THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def to_minor_units(amount: Union[Decimal, int, float, str], currency: str = "USD") -> int:
    """
    Convert a major-unit amount to integer minor units.

    Rounds half-up to the currency's minor unit. Floats go through
    ``str()`` so that 10.01 becomes 1001, not 1000.

    Raises:
        ValueError: If the amount is not a finite number
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a monetary amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Not a monetary amount: {amount!r}")

    scale = Decimal(10) ** minor_unit_exponent(currency)
    return int((value * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(units: int, currency: str = "USD") -> Decimal:
    """Convert integer minor units back to an exact Decimal amount."""
    exponent = minor_unit_exponent(currency)
    return Decimal(units).scaleb(-exponent)


def format_amount(units: int, currency: str = "USD") -> str:
    """
    Format minor units for display.

    Examples: ``$30.00``, ``-€5.50``, ``¥1,200``, ``CHF 12.00``.
    """
    code = currency.upper()
    exponent = minor_unit_exponent(code)
    major = abs(to_major_units(units, code))
    number = f"{major:,.{exponent}f}"
    sign = "-" if units < 0 else ""

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{code} {number}"
