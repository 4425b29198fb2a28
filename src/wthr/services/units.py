"""Temperature rounding and unit conversion."""

import math


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9.0 / 5.0 + 32.0
