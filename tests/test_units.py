"""Tests for the amount value types."""

from __future__ import annotations

from decimal import Decimal

import pytest

from crake_wallet.errors import InvalidAmountError
from crake_wallet.units import DecimalAmount, SmallestUnit, gwei_to_wei, wei_to_gwei


def test_parse_and_convert_to_wei():
    amount = DecimalAmount.parse("0.5")
    assert amount.to_smallest() == SmallestUnit(500_000_000_000_000_000)


def test_smallest_to_decimal():
    assert str(SmallestUnit(420_000_000_000_000).to_decimal()) == "0.00042"


def test_token_decimals_round_trip_exactly():
    amount = DecimalAmount.parse("12.345678", decimals=6)
    units = amount.to_smallest()
    assert units.value == 12_345_678
    assert units.decimals == 6
    assert units.to_decimal() == amount


def test_large_values_keep_precision():
    amount = DecimalAmount.parse("123456789012.123456789012345678")
    assert amount.to_smallest().value == 123456789012123456789012345678


@pytest.mark.parametrize("text", ["", "   ", "abc", "1.2.3", "NaN", "Infinity"])
def test_parse_rejects_garbage(text):
    with pytest.raises(InvalidAmountError):
        DecimalAmount.parse(text)


def test_parse_rejects_excess_precision():
    with pytest.raises(InvalidAmountError):
        DecimalAmount.parse("0.1234567", decimals=6)


def test_trailing_zeros_are_not_excess_precision():
    assert DecimalAmount.parse("1.5000000", decimals=6).value == Decimal("1.5")


def test_parse_rejects_floats():
    with pytest.raises(InvalidAmountError):
        DecimalAmount.parse(0.1)


def test_add_and_compare_same_type():
    total = DecimalAmount.parse("0.999") + DecimalAmount.parse("0.002")
    assert total > DecimalAmount.parse("1.0")
    assert str(total) == "1.001"


def test_mixing_representations_raises():
    with pytest.raises(TypeError):
        DecimalAmount.parse("1") + SmallestUnit(1)
    with pytest.raises(TypeError):
        SmallestUnit(1) < DecimalAmount.parse("1")


def test_mixing_decimals_raises():
    with pytest.raises(TypeError):
        DecimalAmount.parse("1", decimals=6) + DecimalAmount.parse("1")


def test_smallest_unit_parse():
    assert SmallestUnit.parse("21000").value == 21000
    with pytest.raises(InvalidAmountError):
        SmallestUnit.parse("-5")
    with pytest.raises(InvalidAmountError):
        SmallestUnit.parse("1.5")
    with pytest.raises(InvalidAmountError):
        SmallestUnit.parse("²")


def test_gwei_conversions():
    assert gwei_to_wei("20") == 20_000_000_000
    assert gwei_to_wei("1.5") == 1_500_000_000
    assert wei_to_gwei(20_000_000_000) == Decimal("20")


def test_str_of_zero():
    assert str(DecimalAmount.zero()) == "0"
