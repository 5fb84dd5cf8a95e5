"""Temperature unit conversion."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

_KELVIN_OFFSET = Decimal("273.15")
TWO_PLACES = Decimal("0.01")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_celsius(kelvin: Union[Decimal, float, int]) -> Decimal:
    """Convert a Kelvin temperature to Celsius rounded to two decimals."""
    return quantize(Decimal(str(kelvin)) - _KELVIN_OFFSET)
