from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

from weatherlens.forecast import summarize_daily, summarize_hourly
from weatherlens.schemas import ForecastPeriod

START = datetime(2026, 10, 17, 6, 0)


def _period(when: datetime, temp: float = 70.0, pop: float = 0.2, wind: float = 8.4) -> ForecastPeriod:
    return ForecastPeriod(
        time=when,
        temp=temp,
        temp_min=temp - 5,
        temp_max=temp + 5,
        humidity=55,
        condition="Partly Sunny",
        description="partly sunny",
        icon="02d",
        wind_speed=wind,
        pop=pop,
    )


def _feed(count: int, step: timedelta) -> List[ForecastPeriod]:
    return [_period(START + i * step, temp=60 + i) for i in range(count)]


def test_daily_keeps_first_period_per_date() -> None:
    # 06:00 and 18:00 on three consecutive days
    periods = _feed(6, timedelta(hours=12))

    days = summarize_daily(periods, "loc-1")

    assert len(days) == 3
    assert [d.forecast_date.date() for d in days] == [
        START.date(),
        START.date() + timedelta(days=1),
        START.date() + timedelta(days=2),
    ]
    # first period of each day: temps 60, 62, 64
    assert [d.high_temp for d in days] == [65, 67, 69]
    assert [d.low_temp for d in days] == [55, 57, 59]
    assert all(d.location_id == "loc-1" for d in days)


def test_daily_caps_at_five_dates() -> None:
    days = summarize_daily(_feed(10, timedelta(days=1)), "loc-1")
    assert len(days) == 5
    assert days[-1].forecast_date == START + timedelta(days=4)


def test_daily_projects_percentages_and_rounding() -> None:
    [day] = summarize_daily([_period(START, pop=0.125, wind=8.5)], "loc-1")
    assert day.precipitation == 13
    assert day.wind_speed == 9
    assert day.humidity == 55
    assert day.condition == "partly sunny"
    assert day.condition_icon == "02d"


def test_daily_empty_feed() -> None:
    assert summarize_daily([], "loc-1") == []


def test_hourly_takes_first_eight_of_twenty() -> None:
    periods = _feed(20, timedelta(hours=1))

    slots = summarize_hourly(periods, "loc-2")

    assert len(slots) == 8
    assert [s.forecast_time for s in slots] == [p.time for p in periods[:8]]
    assert [s.temperature for s in slots] == list(range(60, 68))
    assert all(s.precipitation == 20 for s in slots)


def test_hourly_short_feed_returns_everything() -> None:
    slots = summarize_hourly(_feed(3, timedelta(hours=1)), "loc-2")
    assert len(slots) == 3


def test_hourly_serializes_camel_case() -> None:
    [slot] = summarize_hourly(_feed(1, timedelta(hours=1)), "loc-2")
    payload = slot.model_dump(by_alias=True)
    assert set(payload) == {
        "locationId", "forecastTime", "temperature", "condition",
        "conditionIcon", "precipitation", "windSpeed",
    }
