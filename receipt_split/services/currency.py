"""Currency-aware rounding.

Minor-unit exponents follow ISO 4217. Only the currencies that do not use
two decimal places are listed; everything else, including unknown or
missing codes, uses two.
"""

from __future__ import annotations

from decimal import MAX_EMAX, MIN_EMIN, ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext

DEFAULT_DECIMAL_PLACES = 2

# largest amount accepted for a price, tax, tip or custom amount
MAX_AMOUNT = Decimal("1000000000000")

# values past this magnitude are treated like NaN
_MAX_ADJUSTED_EXPONENT = 1000

_DECIMAL_PLACES: dict[str, int] = {
    # no minor unit
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "UYI": 0, "VND": 0, "VUV": 0,
    "XAF": 0, "XOF": 0, "XPF": 0,
    # three-decimal minor unit
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
    # four-decimal minor unit
    "CLF": 4, "UYW": 4,
}


def normalize_code(currency: str | None) -> str | None:
    if currency is None:
        return None
    code = currency.strip().upper()
    return code or None


def decimal_places(currency: str | None = None) -> int:
    code = normalize_code(currency)
    if code is None:
        return DEFAULT_DECIMAL_PLACES
    return _DECIMAL_PLACES.get(code, DEFAULT_DECIMAL_PLACES)


def to_decimal(value) -> Decimal:
    """Convert a stored value to Decimal without carrying binary float noise.

    Floats go through their shortest repr, so ``12.950000762939453`` stays
    that literal and ``2.675`` becomes ``Decimal("2.675")`` instead of
    ``2.67499999...``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def _wide_context(d: Decimal, places: int) -> Context:
    # the default 28 digits are not enough to quantize large amounts
    return Context(
        prec=max(28, d.adjusted() + places + 3),
        rounding=ROUND_HALF_UP,
        Emax=MAX_EMAX,
        Emin=MIN_EMIN,
    )


def round_amount(value, currency: str | None = None) -> Decimal:
    """Round half-up to the currency's minor unit. Never raises."""
    places = decimal_places(currency)
    try:
        d = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        d = Decimal(0)
    if not d.is_finite() or d.adjusted() > _MAX_ADJUSTED_EXPONENT:
        d = Decimal(0)
    with localcontext(_wide_context(d, places)):
        return d.quantize(_quantum(places), rounding=ROUND_HALF_UP)


def format_amount(value, currency: str | None = None) -> str:
    return str(round_amount(value, currency))


def to_minor_units(value, currency: str | None = None) -> int:
    places = decimal_places(currency)
    rounded = round_amount(value, currency)
    with localcontext(_wide_context(rounded, places)):
        return int(rounded.scaleb(places).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(units: int, currency: str | None = None) -> Decimal:
    places = decimal_places(currency)
    d = Decimal(units)
    with localcontext(_wide_context(d, places)):
        return d.scaleb(-places).quantize(_quantum(places))
