"""Price arithmetic shared by the simulator and the alert emitter.

All money values are ``Decimal`` rounded to cents with ROUND_HALF_UP
(half away from zero for positive prices). Floats are converted through
``str`` first so binary representation noise never decides a rounding
boundary: 19.995 always becomes 20.00.
"""
import random
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENTS = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_price(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_price(value) -> Optional[Decimal]:
    """Lenient parse of a vendor price field; unusable or non-positive input becomes None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        price = to_decimal(value)
    except (ArithmeticError, TypeError, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return quantize_price(price)


def draw_change_percent(max_change: float, rng: Optional[random.Random] = None) -> float:
    """Uniform percentage in the closed interval [-max_change, +max_change]."""
    return (rng or random).uniform(-max_change, max_change)


def simulate_price_change(price: Number, change_percent: Number) -> Decimal:
    """Apply a percentage change to a price and round to cents."""
    factor = Decimal(1) + to_decimal(change_percent) / Decimal(100)
    return quantize_price(to_decimal(price) * factor)


def drop_amount(old_price: Number, new_price: Number) -> Decimal:
    return quantize_price(to_decimal(old_price) - to_decimal(new_price))


def drop_percent(old_price: Number, new_price: Number) -> Decimal:
    old = to_decimal(old_price)
    return quantize_price((old - to_decimal(new_price)) / old * Decimal(100))
