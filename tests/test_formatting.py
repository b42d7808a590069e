import math

import pytest

from practice_finsight.formatting import format_euro, format_percentage


@pytest.mark.parametrize(
    "value, expected",
    [
        (1234.5, "€1,234.50"),
        (0.0, "€0.00"),
        (-12.0, "-€12.00"),
        (math.inf, "∞"),
        (-math.inf, "-∞"),
        (math.nan, "n/a"),
    ],
)
def test_format_euro(value: float, expected: str) -> None:
    assert format_euro(value) == expected


def test_format_euro_decimals() -> None:
    assert format_euro(1234.567, decimals=0) == "€1,235"


def test_format_percentage() -> None:
    assert format_percentage(12.345) == "12.3%"
    assert format_percentage(1.39, 2) == "1.39%"
    assert format_percentage(math.nan) == "n/a"
