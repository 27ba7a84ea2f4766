"""
Unit conversions and rounding shared by the generator and the NWS mapping.

NWS observations arrive in SI units (degC, km/h, Pa, m); everything we
store and serve is imperial.
"""

from __future__ import annotations

import math

COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side (round() uses banker's rounding)."""
    return int(math.floor(value + 0.5))


def celsius_to_fahrenheit(c: float) -> int:
    return round_half_up(c * 9 / 5 + 32)


def kmh_to_mph(kmh: float) -> int:
    return round_half_up(kmh / 1.609344)


def pascal_to_inhg(pa: float) -> float:
    return round(pa / 3386.389, 2)


def meters_to_miles(m: float) -> int:
    return round_half_up(m / 1609.344)


def compass_point(degrees: float) -> str:
    """Bucket a bearing into one of 16 compass points (22.5 degrees each)."""
    return COMPASS_POINTS[round_half_up(degrees / 22.5) % 16]
