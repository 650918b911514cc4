"""Reconcile raw extracted line items into canonical items.

Input comes from the LLM structurer or the fallback text parser and is
untrusted: prices may be missing, garbled or carry currency symbols, and
quantities may be absent. Nothing here raises; bad candidates are dropped.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from receipt_split.services.currency import MAX_AMOUNT

logger = logging.getLogger(__name__)

# precision kept for derived per-unit prices
_DERIVED_QUANTUM = Decimal("0.000001")

# receipt_items.quantity is a 32-bit INTEGER
MAX_QUANTITY = 2**31 - 1

_CURRENCY_SYMBOLS = {
    "$": "USD",
    "US$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "₩": "KRW",
}

_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")
_PRICE_NOISE_RE = re.compile(r"[\s,$€£¥₹₩]|US\$|[A-Za-z]{3}$|^[A-Za-z]{3}")

_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d/%m/%y",
    "%d/%m/%Y",
)


@dataclass
class NormalizedItem:
    name: str
    quantity: int
    total_price: Decimal
    price_per_item: Decimal


@dataclass
class NormalizedReceipt:
    items: list[NormalizedItem] = field(default_factory=list)
    currency: str | None = None
    receipt_date: datetime | None = None
    title: str | None = None
    tax: Decimal | None = None
    tip: Decimal | None = None


def parse_money(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        d = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
        return d if d.is_finite() else None
    if isinstance(value, str):
        cleaned = _PRICE_NOISE_RE.sub("", value.strip())
        if not cleaned:
            return None
        try:
            d = Decimal(cleaned)
        except InvalidOperation:
            return None
        return d if d.is_finite() else None
    return None


def parse_quantity(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 1
    qty: int
    try:
        if isinstance(value, str):
            qty = int(Decimal(value.strip()))
        else:
            qty = int(value)
    except (InvalidOperation, ValueError, TypeError, OverflowError):
        return 1
    return qty if qty >= 1 else 1


def normalize_currency(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    if s in _CURRENCY_SYMBOLS:
        return _CURRENCY_SYMBOLS[s]
    code = s.upper()
    return code if _CURRENCY_CODE_RE.match(code) else None


def parse_receipt_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    try:
        # offsets and fractional seconds
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def _non_negative(value: Any) -> Decimal | None:
    d = parse_money(value)
    if d is None or d < 0 or d > MAX_AMOUNT:
        return None
    return d


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def normalize_item(raw: Any) -> NormalizedItem | None:
    name = _optional_text(_field(raw, "name"))
    if name is None:
        return None

    quantity = parse_quantity(_field(raw, "quantity"))
    if quantity > MAX_QUANTITY:
        return None
    total = parse_money(_field(raw, "total_price"))
    per_item = parse_money(_field(raw, "price_per_item"))

    if total is None and per_item is None:
        return None
    try:
        if total is None:
            total = per_item * quantity
        elif per_item is None:
            per_item = (total / quantity).quantize(_DERIVED_QUANTUM, rounding=ROUND_HALF_UP)
    except ArithmeticError:
        # absurd magnitudes out of OCR noise
        return None

    if total <= 0 or per_item <= 0:
        return None
    if total > MAX_AMOUNT or per_item > MAX_AMOUNT:
        return None

    return NormalizedItem(name=name, quantity=quantity, total_price=total, price_per_item=per_item)


def normalize_items(raw_items: Any) -> list[NormalizedItem]:
    if not isinstance(raw_items, (list, tuple)):
        return []
    items = []
    for raw in raw_items:
        item = normalize_item(raw)
        if item is None:
            logger.debug("dropping unusable line item: %r", raw)
            continue
        items.append(item)
    return items


def normalize_extraction(raw: Any) -> NormalizedReceipt:
    if raw is None:
        return NormalizedReceipt()

    receipt_date = parse_receipt_date(_field(raw, "receipt_date"))
    if receipt_date is None:
        receipt_date = parse_receipt_date(_field(raw, "date"))

    return NormalizedReceipt(
        items=normalize_items(_field(raw, "items")),
        currency=normalize_currency(_field(raw, "currency")),
        receipt_date=receipt_date,
        title=_optional_text(_field(raw, "title")),
        tax=_non_negative(_field(raw, "tax")),
        tip=_non_negative(_field(raw, "tip")),
    )
