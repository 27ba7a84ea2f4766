"""
Forecast summaries.

The raw feed (10 NWS day/night periods, or 10 synthetic one-day slots) is
reduced to the two shapes the UI shows: daily cards and a short hourly strip.
"""

from __future__ import annotations

from datetime import date
from typing import List, Sequence, Set

from .schemas import ForecastEntry, ForecastPeriod, HourlyEntry
from .units import round_half_up

DAILY_LIMIT = 5
HOURLY_LIMIT = 8


def summarize_daily(
    periods: Sequence[ForecastPeriod],
    location_id: str,
    limit: int = DAILY_LIMIT,
) -> List[ForecastEntry]:
    """
    One card per calendar day.

    Strategy:
    - walk the feed in order
    - keep the first period seen for each date (the period's own local date)
    - stop once `limit` dates are collected; no padding when the feed is short
    """
    seen: Set[date] = set()
    days: List[ForecastEntry] = []

    for p in periods:
        if len(days) >= limit:
            break
        d = p.time.date()
        if d in seen:
            continue
        seen.add(d)
        days.append(ForecastEntry(
            location_id=location_id,
            forecast_date=p.time,
            high_temp=round_half_up(p.temp_max),
            low_temp=round_half_up(p.temp_min),
            condition=p.description,
            condition_icon=p.icon,
            precipitation=round_half_up(p.pop * 100),
            wind_speed=round_half_up(p.wind_speed),
            humidity=p.humidity,
        ))

    return days


def summarize_hourly(
    periods: Sequence[ForecastPeriod],
    location_id: str,
    limit: int = HOURLY_LIMIT,
) -> List[HourlyEntry]:
    """The first `limit` slots of the feed, projected onto the hourly fields."""
    return [
        HourlyEntry(
            location_id=location_id,
            forecast_time=p.time,
            temperature=round_half_up(p.temp),
            condition=p.description,
            condition_icon=p.icon,
            precipitation=round_half_up(p.pop * 100),
            wind_speed=round_half_up(p.wind_speed),
        )
        for p in periods[:limit]
    ]
