"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from treasury.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("123.45", Decimal("123.45")),
        ("-123.45", Decimal("-123.45")),
        ("+123.45", Decimal("123.45")),
        ("€123.45", Decimal("123.45")),
        ("123,45 EUR", Decimal("123.45")),
        ("1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("-1.234,56", Decimal("-1234.56")),
        ("1,234", Decimal("1234")),
        ("1.234.567", Decimal("1234567")),
        ("(49.99)", Decimal("-49.99")),
        ("49,99-", Decimal("-49.99")),
        ("1 234,50", Decimal("1234.50")),
    ],
)
def test_parse_amount_formats(raw, expected):
    """Test the formats found on bank statements."""
    assert parse_amount(raw) == expected


def test_parse_amount_keeps_decimal_precision():
    """Amounts are Decimals, never floats."""
    result = parse_amount("0.10")
    assert isinstance(result, Decimal)
    assert result + parse_amount("0.20") == Decimal("0.30")


@pytest.mark.parametrize("raw", ["", "   ", "abc", "12..3.4,5,6", "NaN", "Infinity"])
def test_parse_amount_rejects_garbage(raw):
    """Test that unparseable strings raise ValueError."""
    with pytest.raises(ValueError):
        parse_amount(raw)
