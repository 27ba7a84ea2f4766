"""
ORM models.

We store:
- locations (seeded, searched, or created from coordinates)
- one current weather reading per location (overwritten on refresh)
- weather alerts, keyed loosely by location id

Forecasts are not stored here; the raw feed is cached in process memory
(see cache.py).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Integer, Float, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), index=True)
    country: Mapped[str] = mapped_column(String(64))
    state: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    lat: Mapped[float] = mapped_column(Float)
    lon: Mapped[float] = mapped_column(Float)
    zip_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)


class WeatherReading(Base):
    __tablename__ = "weather_readings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # At most one row per location.
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id"), unique=True, index=True)

    temperature: Mapped[float] = mapped_column(Float)
    feels_like: Mapped[float] = mapped_column(Float)
    humidity: Mapped[int] = mapped_column(Integer)
    wind_speed: Mapped[float] = mapped_column(Float)
    wind_direction: Mapped[str] = mapped_column(String(3))
    pressure: Mapped[float] = mapped_column(Float)  # inHg
    visibility: Mapped[float] = mapped_column(Float)  # miles
    uv_index: Mapped[int] = mapped_column(Integer)
    condition: Mapped[str] = mapped_column(String(128))
    condition_icon: Mapped[str] = mapped_column(String(8))
    precipitation: Mapped[float] = mapped_column(Float)
    sunrise: Mapped[datetime] = mapped_column(DateTime)
    sunset: Mapped[datetime] = mapped_column(DateTime)

    # Naive UTC; drives the freshness check.
    last_updated: Mapped[datetime] = mapped_column(DateTime)


class WeatherAlert(Base):
    __tablename__ = "weather_alerts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # Not validated against locations; an unknown id simply matches nothing.
    location_id: Mapped[str] = mapped_column(String(36), index=True)

    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    severity: Mapped[str] = mapped_column(String(16))  # severe, moderate, minor
    category: Mapped[str] = mapped_column(String(32))
    areas: Mapped[List[str]] = mapped_column(JSON)
    start_time: Mapped[datetime] = mapped_column(DateTime)
    end_time: Mapped[datetime] = mapped_column(DateTime)
    is_active: Mapped[int] = mapped_column(Integer, default=1)
