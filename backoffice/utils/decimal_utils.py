# backoffice/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def qty4(value) -> Decimal:
    return to_decimal(value).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def unit_rate(value, qty) -> Decimal:
    """value / qty to 4 places, 0 when there is no quantity."""
    qty = to_decimal(qty)
    if qty <= 0:
        return qty4(ZERO)
    return qty4(to_decimal(value) / qty)
