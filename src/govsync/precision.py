"""
govsync/precision.py

Fixed-precision arithmetic for vote weights and token amounts.

Weights are kept as Python ints in token base units. Every ratio and
percentage goes through Decimal with a context wide enough for uint256
values, so nothing is rounded through floating point.
"""

from decimal import Decimal, Context, ROUND_HALF_UP, localcontext
from typing import Union

from .config import DISPLAY_DECIMALS

# uint256 max has 78 digits; leave room for the fractional part
PRECISION_CONTEXT = Context(prec=120, rounding=ROUND_HALF_UP)

Number = Union[int, str, Decimal]

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class BigInt(int):
    """
    Marks an int that is persisted with the "<digits>n" big-integer encoding.

    Behaves exactly like int; only the persisted-state encoder looks at the type.
    """

    def __repr__(self) -> str:
        return f"BigInt({int(self)})"


def to_decimal(value: Union[Number, float]) -> Decimal:
    """Convert a weight, amount or ratio to Decimal without binary rounding."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric weight")
    if isinstance(value, int):
        return Decimal(int(value))
    if isinstance(value, float):
        # repr() gives the shortest string that round-trips
        return Decimal(repr(value))
    return Decimal(str(value).strip())


def quantize(value: Number, places: int = DISPLAY_DECIMALS) -> Decimal:
    """Round half-up to a fixed number of decimal places."""
    exponent = Decimal(1).scaleb(-places)
    with localcontext(PRECISION_CONTEXT):
        return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def ratio(numerator: Number, denominator: Number) -> Decimal:
    """Exact-as-possible numerator / denominator; zero when denominator is zero."""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return ZERO
    with localcontext(PRECISION_CONTEXT):
        return to_decimal(numerator) / denominator


def percentage(part: Number, total: Number, places: int = DISPLAY_DECIMALS) -> Decimal:
    """part as a percentage of total, rounded half-up."""
    with localcontext(PRECISION_CONTEXT):
        return quantize(ratio(part, total) * HUNDRED, places)


def format_units(amount: Number, decimals: int) -> Decimal:
    """Convert an amount in token base units to whole-token units."""
    with localcontext(PRECISION_CONTEXT):
        value = to_decimal(amount)
        if not decimals:
            return value
        return value.scaleb(-decimals)


def parse_units(amount: Number, decimals: int) -> int:
    """Convert whole-token units back to base units (truncating dust)."""
    with localcontext(PRECISION_CONTEXT):
        return int(to_decimal(amount).scaleb(decimals))


def format_amount(value: Number, places: int = DISPLAY_DECIMALS) -> str:
    """
    Render a value rounded to `places` without trailing zeros.

    "600.00" -> "600", "12.50" -> "12.5".
    """
    rounded = quantize(value, places)
    if rounded == 0:
        return "0"
    return format(rounded.normalize(), "f")


def format_percentage(value: Number, places: int = DISPLAY_DECIMALS) -> str:
    return f"{format_amount(value, places)}%"
