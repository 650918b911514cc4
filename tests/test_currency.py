from decimal import Decimal

import pytest

from receipt_split.services.currency import (
    decimal_places,
    format_amount,
    from_minor_units,
    round_amount,
    to_decimal,
    to_minor_units,
)


@pytest.mark.parametrize(
    "code,places",
    [("USD", 2), ("usd", 2), (" eur ", 2), ("JPY", 0), ("KRW", 0), ("KWD", 3), ("BHD", 3), ("CLF", 4), ("XYZ", 2), (None, 2), ("", 2)],
)
def test_decimal_places(code, places):
    assert decimal_places(code) == places


def test_float_goes_through_repr():
    assert to_decimal(2.675) == Decimal("2.675")
    assert to_decimal(0.1) == Decimal("0.1")


def test_round_half_up():
    assert round_amount(2.675, "USD") == Decimal("2.68")
    assert round_amount(Decimal("0.125")) == Decimal("0.13")
    assert round_amount(1234.5, "JPY") == Decimal("1235")
    assert round_amount("1.2345", "KWD") == Decimal("1.235")


def test_round_non_finite_and_garbage_become_zero():
    assert round_amount(float("nan"), "USD") == Decimal("0.00")
    assert round_amount(float("inf"), "USD") == Decimal("0.00")
    assert round_amount(Decimal("-Infinity"), "JPY") == Decimal("0")
    assert round_amount("not a number") == Decimal("0.00")


def test_format_amount():
    assert format_amount(22, "USD") == "22.00"
    assert format_amount(22, "JPY") == "22"
    assert format_amount(1.25, "OMR") == "1.250"


def test_minor_units():
    assert to_minor_units(10, "USD") == 1000
    assert to_minor_units(3.335, "USD") == 334
    assert to_minor_units("1.2345", "KWD") == 1235
    assert to_minor_units(1000, "JPY") == 1000

    assert from_minor_units(334, "USD") == Decimal("3.34")
    assert str(from_minor_units(1235, "KWD")) == "1.235"
    assert str(from_minor_units(1000, "JPY")) == "1000"


@pytest.mark.parametrize("currency", ["USD", "JPY", "KWD", "CLF", None])
@pytest.mark.parametrize("value", [12.950000762939453, 0.005, 1234.5678, Decimal("99.99995"), 7])
def test_rounding_is_idempotent(value, currency):
    once = round_amount(value, currency)
    assert round_amount(once, currency) == once
    assert to_minor_units(once, currency) == to_minor_units(value, currency)


def test_float_noise_rounds_to_intended_value():
    assert round_amount(12.950000762939453, "USD") == Decimal("12.95")
    assert format_amount(12.950000762939453) == "12.95"


@pytest.mark.parametrize(
    "value,expected",
    [
        (1e27, Decimal(10**27)),
        (1e30, Decimal(10**30)),
        (Decimal("123456789012345678901234567890.125"), Decimal("123456789012345678901234567890.13")),
        (Decimal("1e200"), Decimal(10**200)),
    ],
)
def test_large_finite_amounts_round(value, expected):
    assert round_amount(value, "USD") == expected


@pytest.mark.parametrize("value", [1.7976931348623157e308, Decimal("9" * 60), Decimal("1e5000"), 10**400])
@pytest.mark.parametrize("currency", ["USD", "JPY", "KWD"])
def test_rounding_never_raises(value, currency):
    rounded = round_amount(value, currency)
    assert rounded.is_finite()
    assert from_minor_units(to_minor_units(value, currency), currency) == rounded


def test_large_minor_units():
    assert to_minor_units(1e27, "USD") == 10**29
    assert from_minor_units(10**29, "USD") == Decimal(10**27)
    assert str(from_minor_units(10**40 + 5, "KWD")) == "10000000000000000000000000000000000000.005"
