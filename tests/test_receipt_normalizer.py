from datetime import datetime
from decimal import Decimal

import pytest

from receipt_split.services.receipt_normalizer import (
    normalize_currency,
    normalize_extraction,
    normalize_item,
    normalize_items,
    parse_money,
    parse_quantity,
    parse_receipt_date,
)
from receipt_split.services.receipt_structurer import ParsedItem, ParsedReceipt


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("$12.50", Decimal("12.50")),
        ("1,234.56", Decimal("1234.56")),
        ("12.50 USD", Decimal("12.50")),
        ("EUR 3.00", Decimal("3.00")),
        ("€ 4", Decimal("4")),
        (7, Decimal("7")),
        (2.5, Decimal("2.5")),
        ("", None),
        ("free", None),
        (None, None),
        (True, None),
        (float("inf"), None),
        (float("nan"), None),
    ],
)
def test_parse_money(raw, expected):
    assert parse_money(raw) == expected


@pytest.mark.parametrize("raw,expected", [(None, 1), ("3", 3), (2, 2), (0, 1), (-2, 1), ("x", 1), (True, 1)])
def test_parse_quantity(raw, expected):
    assert parse_quantity(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [("$", "USD"), ("€", "EUR"), ("eur", "EUR"), (" jpy ", "JPY"), ("dollars", None), ("", None), (None, None)],
)
def test_normalize_currency(raw, expected):
    assert normalize_currency(raw) == expected


def test_parse_receipt_date():
    assert parse_receipt_date("2024-03-05") == datetime(2024, 3, 5)
    assert parse_receipt_date("2024-03-05 18:30") == datetime(2024, 3, 5, 18, 30)
    assert parse_receipt_date("05/03/24") == datetime(2024, 3, 5)
    assert parse_receipt_date("2024-03-05T10:00:00+02:00") == datetime(2024, 3, 5, 8, 0)
    assert parse_receipt_date("yesterday") is None
    assert parse_receipt_date(None) is None


def test_item_total_derived_from_unit_price():
    item = normalize_item({"name": " Latte ", "quantity": 2, "price_per_item": "$4.50"})

    assert item.name == "Latte"
    assert item.total_price == Decimal("9.00")
    assert item.price_per_item == Decimal("4.50")


def test_item_unit_price_derived_from_total():
    item = normalize_item({"name": "Cake", "quantity": "3", "total_price": "10"})

    assert item.quantity == 3
    assert item.price_per_item == Decimal("3.333333")


def test_missing_quantity_defaults_to_one():
    item = normalize_item({"name": "Soup", "total_price": 6.5})

    assert item.quantity == 1
    assert item.price_per_item == Decimal("6.5")


@pytest.mark.parametrize(
    "raw",
    [
        {"name": "", "total_price": "3.00"},
        {"name": "   ", "total_price": "3.00"},
        {"name": "Ghost"},
        {"name": "Freebie", "total_price": "0.00"},
        {"name": "Refund", "total_price": "-4.00"},
        {"name": "Garbled", "total_price": "abc"},
        {"name": "Yacht", "total_price": "1e27"},
        {"name": "Yacht", "total_price": 1e27, "price_per_item": 1e27},
        {"name": "Yacht", "quantity": 1, "price_per_item": "1e400"},
        {"name": "Bolt", "quantity": 10**20, "price_per_item": "1"},
        {"name": "Bolt", "quantity": "99999999999", "total_price": "5"},
    ],
)
def test_unusable_items_are_dropped(raw):
    assert normalize_item(raw) is None


def test_normalize_items_keeps_good_ones():
    items = normalize_items([{"name": "Tea", "total_price": "2"}, {"name": "", "total_price": "1"}, "junk"])

    assert [i.name for i in items] == ["Tea"]
    assert normalize_items(None) == []


def test_normalize_extraction_from_mapping():
    result = normalize_extraction(
        {
            "title": "  Cafe Roma ",
            "date": "2024-01-02",
            "currency": "£",
            "tax": "1.20",
            "tip": "-3",
            "items": [{"name": "Scone", "quantity": 2, "total_price": "5.00"}],
        }
    )

    assert result.title == "Cafe Roma"
    assert result.receipt_date == datetime(2024, 1, 2)
    assert result.currency == "GBP"
    assert result.tax == Decimal("1.20")
    assert result.tip is None
    assert len(result.items) == 1


def test_normalize_extraction_from_parsed_receipt():
    parsed = ParsedReceipt(
        title="Diner",
        receipt_date="2024-06-01T12:15:00",
        currency="usd",
        tip=4.0,
        items=[ParsedItem(name="Burger", quantity=None, total_price=12.95), ParsedItem(name="Water", total_price=None)],
    )

    result = normalize_extraction(parsed)

    assert result.currency == "USD"
    assert result.receipt_date == datetime(2024, 6, 1, 12, 15)
    assert result.tip == Decimal("4.0")
    assert [(i.name, i.quantity, i.total_price) for i in result.items] == [("Burger", 1, Decimal("12.95"))]


def test_normalize_extraction_of_nothing():
    result = normalize_extraction(None)

    assert result.items == []
    assert result.currency is None


def test_oversized_tax_and_tip_are_dropped():
    result = normalize_extraction({"tax": "1e30", "tip": 1e20, "items": []})

    assert result.tax is None
    assert result.tip is None
