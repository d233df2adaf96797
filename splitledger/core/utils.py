from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Union

getcontext().prec = 28
CENTS = Decimal("0.01")

# Anything at or below this magnitude is treated as zero.
EPSILON = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def qround(d: Number) -> Decimal:
    return to_decimal(d).quantize(CENTS, rounding=ROUND_HALF_UP)


def is_effectively_zero(d: Number) -> bool:
    return abs(to_decimal(d)) <= EPSILON
