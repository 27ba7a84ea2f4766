"""
CRUD functions.

Plain store operations over the ORM models. No freshness logic here; the
cache decides when a reading is written.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from . import models
from .schemas import ReadingData


SEARCH_LIMIT = 5


def search_locations(db: Session, query: str, limit: int = SEARCH_LIMIT) -> List[models.Location]:
    """Case-insensitive substring match on name or state; zip codes match as typed."""
    like = f"%{query.lower()}%"
    return (
        db.query(models.Location)
        .filter(or_(
            models.Location.name.ilike(like),
            models.Location.state.ilike(like),
            models.Location.zip_code.contains(query),
        ))
        .limit(limit)
        .all()
    )


def get_location(db: Session, location_id: str) -> models.Location | None:
    """Fetch a single location by id."""
    return db.get(models.Location, location_id)


def get_location_by_coordinates(db: Session, lat: float, lon: float) -> models.Location | None:
    """Exact coordinate match, so a repeated geolocation fix reuses its location."""
    return (
        db.query(models.Location)
        .filter(models.Location.lat == lat, models.Location.lon == lon)
        .first()
    )


def create_location(
    db: Session,
    name: str,
    country: str,
    lat: float,
    lon: float,
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
) -> models.Location:
    location = models.Location(
        name=name, country=country, state=state, lat=lat, lon=lon, zip_code=zip_code,
    )
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def get_reading(db: Session, location_id: str) -> models.WeatherReading | None:
    """The current reading for a location, if one was ever stored."""
    return (
        db.query(models.WeatherReading)
        .filter(models.WeatherReading.location_id == location_id)
        .first()
    )


def create_reading(db: Session, location_id: str, data: ReadingData, now: datetime) -> models.WeatherReading:
    reading = models.WeatherReading(location_id=location_id, last_updated=now, **data.model_dump())
    db.add(reading)
    db.commit()
    db.refresh(reading)
    return reading


def update_reading(db: Session, reading: models.WeatherReading, data: ReadingData, now: datetime) -> models.WeatherReading:
    """Overwrite in place; the row id stays the same."""
    for field, value in data.model_dump().items():
        setattr(reading, field, value)
    reading.last_updated = now

    db.add(reading)
    db.commit()
    db.refresh(reading)
    return reading


def get_active_alerts(db: Session, location_id: str) -> List[models.WeatherAlert]:
    return (
        db.query(models.WeatherAlert)
        .filter(models.WeatherAlert.location_id == location_id, models.WeatherAlert.is_active == 1)
        .all()
    )


def get_all_active_alerts(db: Session) -> List[models.WeatherAlert]:
    return db.query(models.WeatherAlert).filter(models.WeatherAlert.is_active == 1).all()


def create_alert(
    db: Session,
    location_id: str,
    title: str,
    description: str,
    severity: str,
    category: str,
    areas: List[str],
    start_time: datetime,
    end_time: datetime,
    is_active: int = 1,
) -> models.WeatherAlert:
    alert = models.WeatherAlert(
        location_id=location_id,
        title=title,
        description=description,
        severity=severity,
        category=category,
        areas=areas,
        start_time=start_time,
        end_time=end_time,
        is_active=is_active,
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)
    return alert


DEFAULT_LOCATIONS = [
    {"name": "New York", "country": "US", "state": "NY", "lat": 40.7128, "lon": -74.0060, "zip_code": "10001"},
    {"name": "Los Angeles", "country": "US", "state": "CA", "lat": 34.0522, "lon": -118.2437, "zip_code": "90001"},
    {"name": "Chicago", "country": "US", "state": "IL", "lat": 41.8781, "lon": -87.6298, "zip_code": "60601"},
]

# One per default location, in the same order.
DEFAULT_ALERTS = [
    {
        "title": "Winter Storm Warning",
        "description": "Heavy snow expected. Travel may be difficult due to snow-covered roads.",
        "severity": "severe",
        "category": "Met",
        "areas": ["Manhattan", "Brooklyn", "Queens"],
        "hours": 12,
    },
    {
        "title": "Heat Advisory",
        "description": "Temperatures may reach dangerous levels. Stay hydrated and avoid prolonged sun exposure.",
        "severity": "moderate",
        "category": "Met",
        "areas": ["Downtown LA", "Hollywood", "Santa Monica"],
        "hours": 24,
    },
    {
        "title": "Wind Advisory",
        "description": "Strong winds may cause scattered power outages and downed tree limbs.",
        "severity": "minor",
        "category": "Met",
        "areas": ["Cook County", "Lake County"],
        "hours": 6,
    },
]


def seed_defaults(db: Session, now: datetime) -> bool:
    """
    Insert the default cities and their sample alerts into an empty store.
    Returns False (and does nothing) if any location already exists.
    """
    if db.query(models.Location).first() is not None:
        return False

    for loc, alert in zip(DEFAULT_LOCATIONS, DEFAULT_ALERTS):
        location = create_location(db, **loc)
        create_alert(
            db,
            location_id=location.id,
            title=alert["title"],
            description=alert["description"],
            severity=alert["severity"],
            category=alert["category"],
            areas=alert["areas"],
            start_time=now,
            end_time=now + timedelta(hours=alert["hours"]),
        )
    return True
