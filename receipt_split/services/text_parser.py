"""Line-based fallback parser for OCR text.

Used only when LLM extraction fails. Receipt layouts vary a lot, so this
recognises the two most common shapes and leaves reconciliation to the
normalizer:

    Burger   2   $10.00
    Fries        3.50
"""

from __future__ import annotations

import re

_QTY_PRICE_RE = re.compile(r"^(?P<name>.+?)\s+(?P<qty>\d{1,3})\s+\$?(?P<price>\d[\d,]*(?:\.\d{1,2})?)\s*$")
_END_PRICE_RE = re.compile(r"^(?P<name>.+?)\s+\$?(?P<price>\d[\d,]*(?:\.\d{1,2})?)\s*$")

_SKIP_PATTERNS = (
    re.compile(r"^(subtotal|sub total|tax|total|amount|change|cash|card|receipt|thank|visit|date|time|tip|gratuity)", re.I),
    re.compile(r"^\s*\$?[\d,]+\.?\d{0,2}\s*$"),
    re.compile(r"^[\s\-=*_]+$"),
)


def _should_skip(line: str) -> bool:
    return any(p.search(line) for p in _SKIP_PATTERNS)


def extract_items_from_text(ocr_text: str | None) -> list[dict]:
    if not ocr_text:
        return []

    items: list[dict] = []
    for raw_line in ocr_text.splitlines():
        line = raw_line.strip()
        if not line or _should_skip(line):
            continue

        m = _QTY_PRICE_RE.match(line)
        if m:
            items.append({
                "name": m.group("name").strip(),
                "quantity": int(m.group("qty")),
                "total_price": m.group("price").replace(",", ""),
            })
            continue

        m = _END_PRICE_RE.match(line)
        if m:
            items.append({
                "name": m.group("name").strip(),
                "quantity": 1,
                "total_price": m.group("price").replace(",", ""),
            })

    return items
