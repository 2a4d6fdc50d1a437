"""
Currency precision and minor-unit conversion
"""
from __future__ import annotations
import re
from decimal import Context, Decimal, localcontext
from typing import Dict

from errors import InvalidAmount, InvalidCurrency

CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
DEFAULT_DECIMAL_DIGITS = 2

# ISO 4217 codes whose minor unit is not 1/100
DECIMAL_DIGITS: Dict[str, int] = {
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "VND": 0, "XOF": 0, "XPF": 0,
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
}

# wide enough that scaling and share arithmetic on any accepted amount is exact
MONEY_CONTEXT = Context(prec=64)


def normalize_currency(code: str) -> str:
    """Strip and upper-case a currency code, rejecting anything not ISO shaped"""
    if not isinstance(code, str):
        raise InvalidCurrency(f"Currency code must be a string, got {code!r}")
    norm = code.strip().upper()
    if not CURRENCY_RE.match(norm):
        raise InvalidCurrency(f"Invalid currency code: {code!r}")
    return norm


def decimal_digits(currency: str) -> int:
    return DECIMAL_DIGITS.get(normalize_currency(currency), DEFAULT_DECIMAL_DIGITS)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """
    Convert an amount to an integer count of minor units.
    Amounts finer than the currency allows are rejected, never rounded.
    """
    with localcontext(MONEY_CONTEXT):
        units = amount.scaleb(decimal_digits(currency))
        if units != units.to_integral_value():
            raise InvalidAmount(
                f"Amount {amount} has more precision than {normalize_currency(currency)} allows"
            )
        return int(units)


def from_minor_units(units: int, currency: str) -> Decimal:
    digits = decimal_digits(currency)
    with localcontext(MONEY_CONTEXT):
        return Decimal(units).scaleb(-digits).quantize(Decimal(1).scaleb(-digits))


def quantize(amount: Decimal, currency: str) -> Decimal:
    """Re-express an exact amount with exactly the currency's digits"""
    return from_minor_units(to_minor_units(amount, currency), currency)


def format_amount(amount: Decimal, currency: str) -> str:
    """Wire form of an amount, e.g. '33.30' for USD or '1000' for JPY"""
    return str(quantize(amount, currency))
