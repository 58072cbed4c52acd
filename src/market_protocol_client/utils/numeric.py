"""Exact numeric helpers for on-chain quantities.

On-chain values (quantities, prices, token amounts) are integers of arbitrary size and are kept
as Python ``int``. ``Decimal`` only appears when a quantity is parsed or floored, and
always under a context wide enough for 256-bit values.
"""

from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Any

# uint256 has 78 decimal digits; leave headroom for the fractional part
_WIDE_PRECISION = 100


def to_int(value: Any) -> int:
    """Convert an integral value (int, Decimal, numeric string) to ``int`` without rounding.

    Raises:
        ValueError: If the value is fractional, a float, a bool or not numeric
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid quantity")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValueError("Floating point values are not accepted for on-chain quantities")
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        value = text
    try:
        with localcontext() as ctx:
            ctx.prec = _WIDE_PRECISION
            number = Decimal(value)
    except Exception as e:
        raise ValueError(f"Not a numeric value: {value!r}") from e
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"Value must be a whole number: {value!r}")
    return int(number)


def sign(value: int) -> int:
    """Return -1, 0 or 1."""
    return (value > 0) - (value < 0)


def clamp_non_negative(value: int) -> int:
    return max(0, value)


def floor_to_quantity(value: Decimal | int) -> int:
    """Floor a (possibly fractional) quantity to whole contract units, never below zero."""
    if isinstance(value, int):
        return clamp_non_negative(value)
    with localcontext() as ctx:
        ctx.prec = _WIDE_PRECISION
        floored = value.quantize(Decimal("1"), rounding=ROUND_DOWN)
    return clamp_non_negative(int(floored))

