from __future__ import annotations

from decimal import Decimal

import pytest

from services.units import to_celsius


@pytest.mark.parametrize(
    "kelvin, expected",
    [
        (273.15, Decimal("0.00")),
        (300.0, Decimal("26.85")),
        (299.16, Decimal("26.01")),
        (0, Decimal("-273.15")),
        (310.926, Decimal("37.78")),
    ],
)
def test_to_celsius_rounds_to_two_decimals(kelvin, expected) -> None:
    assert to_celsius(kelvin) == expected


def test_to_celsius_matches_rounded_float_difference() -> None:
    for kelvin in (250.5, 280.01, 298.16, 305.37, 318.42):
        assert float(to_celsius(kelvin)) == round(kelvin - 273.15, 2)


def test_to_celsius_always_has_two_fractional_digits() -> None:
    assert str(to_celsius(300)) == "26.85"
    assert str(to_celsius(Decimal("298.15"))) == "25.00"
