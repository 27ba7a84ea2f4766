"""
Synthetic weather.

Produces a plausible reading for any coordinate and time with no I/O and no
state. Used for every coordinate outside the NWS coverage box and as the
fallback whenever the NWS lookup fails, so it must never raise.
"""

from __future__ import annotations

import math
import random
from datetime import datetime, timedelta
from typing import List, Optional

from .schemas import ForecastPeriod, ReadingData
from .units import compass_point, round_half_up

# (description, icon) in a fixed order; the icon codes follow the
# OpenWeather day-icon convention the UI already knows how to draw.
CONDITIONS = [
    ("clear sky", "01d"),
    ("few clouds", "02d"),
    ("scattered clouds", "03d"),
    ("broken clouds", "04d"),
    ("overcast clouds", "04d"),
    ("light rain", "09d"),
    ("rain", "10d"),
]

DIURNAL_AMPLITUDE_F = 15.0
DIURNAL_PEAK_HOUR = 15
TEMP_JITTER_F = 20.0      # full width, i.e. +/-10
FEELS_LIKE_JITTER_F = 10.0  # +/-5
PRECIP_CHANCE = 0.3
SUNRISE = (6, 30)
SUNSET = (19, 0)


def seasonal_base_temp(month: int) -> float:
    """Baseline temperature (F) by calendar month, 1-12."""
    if month in (12, 1, 2):
        return 45.0
    if month in (3, 4, 5):
        return 60.0
    if month in (6, 7, 8):
        return 85.0
    return 65.0


def diurnal_offset(hour: int) -> float:
    """One sine cycle per day, peaking mid-afternoon."""
    return DIURNAL_AMPLITUDE_F * math.sin((hour - DIURNAL_PEAK_HOUR + 6) / 24 * 2 * math.pi)


def uv_index(hour: int) -> int:
    return max(0, round_half_up((hour - 6) / 2))


def generate_reading(
    lat: float,
    lon: float,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> ReadingData:
    """
    Build a complete reading from the calendar month and hour of `now`.

    lat/lon are accepted so callers stay uniform with the live path; they do
    not influence the result yet.
    """
    now = now or datetime.now()
    rng = rng or random.Random()

    raw_temp = (
        seasonal_base_temp(now.month)
        + diurnal_offset(now.hour)
        + (rng.random() - 0.5) * TEMP_JITTER_F
    )
    feels_like = raw_temp + (rng.random() - 0.5) * FEELS_LIKE_JITTER_F

    description, icon = CONDITIONS[rng.randrange(len(CONDITIONS))]

    precipitation = 0.0
    if rng.random() < PRECIP_CHANCE:
        precipitation = round(rng.random() * 0.5, 2)

    return ReadingData(
        temperature=round_half_up(raw_temp),
        feels_like=round_half_up(feels_like),
        humidity=round_half_up(rng.uniform(40, 80)),
        wind_speed=round_half_up(rng.uniform(0, 25)),
        wind_direction=compass_point(rng.uniform(0, 360)),
        pressure=round(rng.uniform(29.5, 31.5), 2),
        visibility=round_half_up(rng.uniform(5, 15)),
        uv_index=uv_index(now.hour),
        condition=description,
        condition_icon=icon,
        precipitation=precipitation,
        sunrise=now.replace(hour=SUNRISE[0], minute=SUNRISE[1], second=0, microsecond=0),
        sunset=now.replace(hour=SUNSET[0], minute=SUNSET[1], second=0, microsecond=0),
    )


def generate_forecast_feed(
    lat: float,
    lon: float,
    periods: int = 10,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[ForecastPeriod]:
    """
    A forecast feed made of synthetic readings, one simulated day per slot.
    """
    now = now or datetime.now()
    rng = rng or random.Random()

    feed: List[ForecastPeriod] = []
    for i in range(periods):
        reading = generate_reading(lat, lon, now=now, rng=rng)
        feed.append(ForecastPeriod(
            time=now + timedelta(days=i),
            temp=reading.temperature,
            temp_min=reading.temperature - 10,
            temp_max=reading.temperature + 10,
            humidity=reading.humidity,
            condition=reading.condition,
            description=reading.condition,
            icon=reading.condition_icon,
            wind_speed=reading.wind_speed,
            pop=0.3 if reading.precipitation > 0 else 0.1,
        ))
    return feed
