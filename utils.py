"""
Utility functions for the balance core
"""
from __future__ import annotations
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Union

from errors import InvalidAmount

AMOUNT_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")

AmountLike = Union[str, int, Decimal]

# significant digits an amount may carry
MAX_AMOUNT_DIGITS = 28


def _check_digits(amount: Decimal) -> Decimal:
    if len(amount.as_tuple().digits) > MAX_AMOUNT_DIGITS:
        raise InvalidAmount(f"Amount {amount} has more than {MAX_AMOUNT_DIGITS} digits")
    return amount


def parse_amount(value: AmountLike) -> Decimal:
    """
    Parse a money amount from its wire form.
    Accepts decimal strings, ints and finite Decimals; floats are rejected
    because they cannot carry an exact decimal value.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmount(f"Amount must be a decimal string, got {type(value).__name__}")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidAmount(f"Amount must be finite, got {value}")
        return _check_digits(value)
    if isinstance(value, int):
        return _check_digits(Decimal(value))
    if not isinstance(value, str):
        raise InvalidAmount(f"Amount must be a decimal string, got {value!r}")
    s = value.strip()
    if not AMOUNT_RE.match(s):
        raise InvalidAmount(f"Malformed amount: {value!r}")
    try:
        amount = Decimal(s)
    except InvalidOperation:
        raise InvalidAmount(f"Malformed amount: {value!r}") from None
    return _check_digits(amount)


def parse_positive_amount(value: AmountLike) -> Decimal:
    amount = parse_amount(value)
    if amount <= 0:
        raise InvalidAmount(f"Amount must be greater than zero, got {amount}")
    return amount


def today_str() -> str:
    """Get today's date as ISO string"""
    return date.today().isoformat()


def now_iso() -> str:
    """Current UTC time as ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat()


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string (a trailing time part is ignored)"""
    return datetime.strptime(s.strip()[:10], "%Y-%m-%d").date()
