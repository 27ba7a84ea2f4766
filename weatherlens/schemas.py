"""
Pydantic schemas.

Two groups:
- internal normalized shapes produced by the gateway and the generator
  (ReadingData, ForecastPeriod)
- the JSON contract of our REST endpoints, serialized with camelCase keys
  because that is what the UI reads
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReadingData(BaseModel):
    """
    One normalized current-conditions reading, before it is stored.
    Field names match models.WeatherReading so it can be written as-is.
    """
    temperature: float
    feels_like: float
    humidity: int
    wind_speed: float
    wind_direction: str
    pressure: float
    visibility: float
    uv_index: int
    condition: str
    condition_icon: str
    precipitation: float
    sunrise: datetime
    sunset: datetime


class ForecastPeriod(BaseModel):
    """
    One slot of a raw forecast feed (live or synthetic).
    pop is a 0..1 probability of precipitation.
    """
    time: datetime
    temp: float
    temp_min: float
    temp_max: float
    humidity: int
    condition: str
    description: str
    icon: str
    wind_speed: float
    pop: float = Field(0.0, ge=0.0, le=1.0)


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LocationOut(ApiModel):
    id: str
    name: str
    country: str
    state: Optional[str] = None
    lat: float
    lon: float
    zip_code: Optional[str] = None


class WeatherReadingOut(ApiModel):
    id: str
    location_id: str
    temperature: float
    feels_like: float
    humidity: int
    wind_speed: float
    wind_direction: str
    pressure: float
    visibility: float
    uv_index: int
    condition: str
    condition_icon: str
    precipitation: float
    sunrise: datetime
    sunset: datetime
    last_updated: datetime


class WeatherOut(ApiModel):
    """Payload of GET /api/weather/{location_id}."""
    location: LocationOut
    weather: WeatherReadingOut


class WeatherAlertOut(ApiModel):
    id: str
    location_id: str
    title: str
    description: str
    severity: str
    category: str
    areas: List[str]
    start_time: datetime
    end_time: datetime
    is_active: int


class ForecastEntry(ApiModel):
    """One day of the 5-day forecast."""
    location_id: str
    forecast_date: datetime
    high_temp: int
    low_temp: int
    condition: str
    condition_icon: str
    precipitation: int  # probability, percent
    wind_speed: int
    humidity: int


class HourlyEntry(ApiModel):
    """One slot of the short-range forecast."""
    location_id: str
    forecast_time: datetime
    temperature: int
    condition: str
    condition_icon: str
    precipitation: int  # probability, percent
    wind_speed: int


class ErrorOut(BaseModel):
    message: str
