"""
Freshness policy in front of the gateway.

Current readings live in the database (one row per location, overwritten in
place); raw forecast feeds live in process memory. Both are refetched once
they are `staleness` old. Refreshes of the same location are coalesced: the
first request takes a per-location lock and fetches, the others wait and then
find fresh data on the re-check.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from . import crud, models
from .schemas import ForecastPeriod
from .weather_clients import WeatherGateway

logger = logging.getLogger("weatherlens.cache")

DEFAULT_STALENESS = timedelta(minutes=30)


def utcnow() -> datetime:
    """Naive UTC, matching what SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_stale(last_updated: datetime, now: datetime, staleness: timedelta = DEFAULT_STALENESS) -> bool:
    return now - last_updated >= staleness


@dataclass
class CachedFeed:
    periods: List[ForecastPeriod]
    source: str
    fetched_at: datetime


class WeatherCache:
    def __init__(
        self,
        gateway: WeatherGateway,
        staleness: timedelta = DEFAULT_STALENESS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.gateway = gateway
        self.staleness = staleness
        self.clock = clock
        self._feeds: Dict[str, CachedFeed] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def clear(self) -> None:
        self._feeds.clear()
        self._locks.clear()

    def _fresh(self, reading: Optional[models.WeatherReading]) -> bool:
        return reading is not None and not is_stale(reading.last_updated, self.clock(), self.staleness)

    async def current(self, db: Session, location: models.Location) -> models.WeatherReading:
        """
        Stored reading if it is fresh; otherwise fetch, store, and return it.
        A refresh overwrites the existing row, so its id never changes.
        """
        reading = crud.get_reading(db, location.id)
        if self._fresh(reading):
            return reading

        async with self._lock_for(f"reading:{location.id}"):
            # Another request may have refreshed while we waited.
            db.expire_all()
            reading = crud.get_reading(db, location.id)
            if self._fresh(reading):
                return reading

            result = await self.gateway.current_reading(location.lat, location.lon)
            now = self.clock()
            logger.info("Refreshed weather for %s (%s) from %s",
                        location.name, location.id, result.source)

            if reading is None:
                return crud.create_reading(db, location.id, result.value, now)
            return crud.update_reading(db, reading, result.value, now)

    async def forecast(self, location: models.Location) -> List[ForecastPeriod]:
        """Raw forecast feed for a location, refetched when stale."""
        key = location.id
        cached = self._feeds.get(key)
        if cached and not is_stale(cached.fetched_at, self.clock(), self.staleness):
            return cached.periods

        async with self._lock_for(f"forecast:{key}"):
            cached = self._feeds.get(key)
            if cached and not is_stale(cached.fetched_at, self.clock(), self.staleness):
                return cached.periods

            result = await self.gateway.forecast_periods(location.lat, location.lon)
            if result.fallback_reason:
                # Live lookup failed; serve the fallback but retry next request.
                self._feeds.pop(key, None)
                logger.info("Forecast for %s (%s) not cached, upstream failed: %s",
                            location.name, location.id, result.fallback_reason)
                return result.value

            self._feeds[key] = CachedFeed(result.value, result.source, self.clock())
            logger.info("Refreshed forecast for %s (%s) from %s: %d periods",
                        location.name, location.id, result.source, len(result.value))
            return result.value
