from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta
from typing import List

import pytest
from sqlalchemy.orm import Session

from weatherlens import crud
from weatherlens.cache import WeatherCache, is_stale
from weatherlens.db import SessionLocal
from weatherlens.schemas import ForecastPeriod, ReadingData
from weatherlens.synthetic import generate_forecast_feed, generate_reading
from weatherlens.weather_clients import SOURCE_NWS, SOURCE_SYNTHETIC, GatewayResult

NOW = datetime(2026, 10, 17, 12, 0)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _CountingGateway:
    """Stands in for WeatherGateway; counts upstream fetches."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.reading_calls = 0
        self.forecast_calls = 0

    async def current_reading(self, lat: float, lon: float) -> GatewayResult[ReadingData]:
        self.reading_calls += 1
        await asyncio.sleep(self.delay)
        reading = generate_reading(lat, lon, now=NOW, rng=random.Random(self.reading_calls))
        return GatewayResult(reading, SOURCE_SYNTHETIC)

    async def forecast_periods(self, lat: float, lon: float) -> GatewayResult[List[ForecastPeriod]]:
        self.forecast_calls += 1
        await asyncio.sleep(self.delay)
        return GatewayResult(generate_forecast_feed(lat, lon, now=NOW), SOURCE_SYNTHETIC)


def _new_york(db: Session):
    return crud.search_locations(db, "New York")[0]


def _store_reading(db: Session, age: timedelta):
    location = _new_york(db)
    data = generate_reading(location.lat, location.lon, now=NOW, rng=random.Random(99))
    return location, crud.create_reading(db, location.id, data, NOW - age)


def test_is_stale_boundary() -> None:
    assert not is_stale(NOW - timedelta(minutes=29, seconds=59), NOW)
    assert is_stale(NOW - timedelta(minutes=30), NOW)


@pytest.mark.anyio
async def test_first_request_fetches_and_stores(db: Session) -> None:
    gateway = _CountingGateway()
    cache = WeatherCache(gateway, clock=_Clock(NOW))
    location = _new_york(db)

    reading = await cache.current(db, location)

    assert gateway.reading_calls == 1
    assert reading.location_id == location.id
    assert reading.last_updated == NOW
    assert crud.get_reading(db, location.id).id == reading.id


@pytest.mark.anyio
async def test_reading_29_minutes_old_is_served_unchanged(db: Session) -> None:
    gateway = _CountingGateway()
    cache = WeatherCache(gateway, clock=_Clock(NOW))
    location, stored = _store_reading(db, timedelta(minutes=29))
    before = (stored.id, stored.temperature, stored.condition, stored.last_updated)

    reading = await cache.current(db, location)

    assert gateway.reading_calls == 0
    assert (reading.id, reading.temperature, reading.condition, reading.last_updated) == before
    assert reading.last_updated == NOW - timedelta(minutes=29)


@pytest.mark.anyio
async def test_reading_31_minutes_old_is_refetched_in_place(db: Session) -> None:
    gateway = _CountingGateway()
    cache = WeatherCache(gateway, clock=_Clock(NOW))
    location, stored = _store_reading(db, timedelta(minutes=31))
    stored_id = stored.id

    reading = await cache.current(db, location)

    assert gateway.reading_calls == 1
    assert reading.id == stored_id
    assert reading.last_updated == NOW


@pytest.mark.anyio
async def test_concurrent_refreshes_are_coalesced() -> None:
    gateway = _CountingGateway(delay=0.05)
    cache = WeatherCache(gateway, clock=_Clock(NOW))

    with SessionLocal() as first, SessionLocal() as second:
        a, b = await asyncio.gather(
            cache.current(first, _new_york(first)),
            cache.current(second, _new_york(second)),
        )

    assert gateway.reading_calls == 1
    assert a.id == b.id


@pytest.mark.anyio
async def test_forecast_feed_is_cached_until_stale(db: Session) -> None:
    gateway = _CountingGateway()
    clock = _Clock(NOW)
    cache = WeatherCache(gateway, clock=clock)
    location = _new_york(db)

    first = await cache.forecast(location)
    clock.now = NOW + timedelta(minutes=10)
    second = await cache.forecast(location)
    assert gateway.forecast_calls == 1
    assert second == first

    clock.now = NOW + timedelta(minutes=31)
    await cache.forecast(location)
    assert gateway.forecast_calls == 2


@pytest.mark.anyio
async def test_clear_drops_cached_feeds(db: Session) -> None:
    gateway = _CountingGateway()
    cache = WeatherCache(gateway, clock=_Clock(NOW))
    location = _new_york(db)

    await cache.forecast(location)
    cache.clear()
    await cache.forecast(location)

    assert gateway.forecast_calls == 2


class _RecoveringGateway(_CountingGateway):
    """First forecast fetch falls back to synthetic; later ones come back live."""

    async def forecast_periods(self, lat: float, lon: float) -> GatewayResult[List[ForecastPeriod]]:
        self.forecast_calls += 1
        feed = generate_forecast_feed(lat, lon, now=NOW)
        if self.forecast_calls == 1:
            return GatewayResult(feed, SOURCE_SYNTHETIC, fallback_reason="NWS request failed (503)")
        return GatewayResult(feed[:1], SOURCE_NWS)


@pytest.mark.anyio
async def test_fallback_forecast_is_not_cached(db: Session) -> None:
    gateway = _RecoveringGateway()
    clock = _Clock(NOW)
    cache = WeatherCache(gateway, clock=clock)
    location = _new_york(db)

    first = await cache.forecast(location)
    assert len(first) == 10

    clock.now = NOW + timedelta(minutes=5)
    second = await cache.forecast(location)
    assert gateway.forecast_calls == 2
    assert len(second) == 1

    clock.now = NOW + timedelta(minutes=10)
    assert await cache.forecast(location) == second
    assert gateway.forecast_calls == 2
