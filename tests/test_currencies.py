from decimal import Decimal

import pytest

from currencies import decimal_digits, format_amount, from_minor_units, normalize_currency, to_minor_units
from errors import InvalidAmount, InvalidCurrency
from utils import parse_amount, parse_date, parse_positive_amount


@pytest.mark.parametrize("code, digits", [("USD", 2), ("EUR", 2), ("JPY", 0), ("KRW", 0), ("KWD", 3), ("XYZ", 2)])
def test_decimal_digits(code, digits):
    assert decimal_digits(code) == digits


@pytest.mark.parametrize("code", ["", "US", "USDT", "U$D", None, 840])
def test_invalid_codes(code):
    with pytest.raises(InvalidCurrency):
        normalize_currency(code)


def test_normalize():
    assert normalize_currency(" eur ") == "EUR"


def test_minor_units():
    assert to_minor_units(Decimal("12.34"), "USD") == 1234
    assert to_minor_units(Decimal("12.3"), "USD") == 1230
    assert to_minor_units(Decimal("-0.001"), "KWD") == -1
    assert from_minor_units(-1234, "USD") == Decimal("-12.34")
    assert str(from_minor_units(5, "KWD")) == "0.005"
    with pytest.raises(InvalidAmount):
        to_minor_units(Decimal("1.5"), "JPY")


def test_format_amount():
    assert format_amount(Decimal("5"), "USD") == "5.00"
    assert format_amount(Decimal("500.0"), "JPY") == "500"
    assert format_amount(Decimal("0"), "USD") == "0.00"


@pytest.mark.parametrize("raw, expected", [
    ("10", Decimal("10")), (" 10.50 ", Decimal("10.50")), ("-3.2", Decimal("-3.2")),
    (7, Decimal("7")), (Decimal("1.25"), Decimal("1.25")),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["1,000", "1e3", "inf", "0x10", 1.5, True, None, [], Decimal("NaN"), "1" * 29, 10 ** 29])
def test_parse_amount_rejects(raw):
    with pytest.raises(InvalidAmount):
        parse_amount(raw)


def test_parse_positive_amount():
    assert parse_positive_amount("0.01") == Decimal("0.01")
    with pytest.raises(InvalidAmount):
        parse_positive_amount("0")


def test_parse_date():
    assert parse_date("2025-03-04T10:00:00Z").isoformat() == "2025-03-04"


def test_minor_units_keep_every_digit():
    amount = parse_amount("1234567890123456789012345.678")
    assert to_minor_units(amount, "KWD") == 1234567890123456789012345678
    assert from_minor_units(1234567890123456789012345678, "KWD") == amount
