"""
Weather clients.

NWSClient talks to api.weather.gov and raises WeatherError for anything that
is not a usable 200 response. WeatherGateway sits on top of it and never
raises: coordinates outside NWS coverage go straight to the synthetic
generator, and every upstream failure is logged and replaced by synthetic
data.

Endpoints used:
- Grid lookup:
    /points/{lat},{lon}
- Forecast (12-hour day/night periods):
    properties.forecast of the grid lookup
- Latest observation (only with nws_use_observations):
    properties.observationStations of the grid lookup, then
    /stations/{id}/observations/latest
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import httpx

from .schemas import ForecastPeriod, ReadingData
from .synthetic import generate_forecast_feed, generate_reading
from .units import (
    celsius_to_fahrenheit,
    compass_point,
    kmh_to_mph,
    meters_to_miles,
    pascal_to_inhg,
    round_half_up,
)

logger = logging.getLogger("weatherlens.gateway")

T = TypeVar("T")

SOURCE_NWS = "nws"
SOURCE_SYNTHETIC = "synthetic"

# Coarse continental-US box; everything else is synthetic.
NWS_LAT_RANGE = (20.0, 50.0)
NWS_LON_RANGE = (-180.0, -60.0)

FORECAST_PERIODS = 10


class WeatherError(RuntimeError):
    """Raised by NWSClient for any unusable upstream response."""
    pass


@dataclass(frozen=True)
class GridPoint:
    """
    The NWS grid reference for a coordinate, plus the resource URLs it
    points at and the nearest named place.
    """
    grid_id: str
    grid_x: int
    grid_y: int
    forecast_url: str
    forecast_hourly_url: str
    observation_stations_url: str
    city: str = ""
    state: str = ""


@dataclass(frozen=True)
class GatewayResult(Generic[T]):
    """
    Outcome of a gateway call. There is no error variant: when the live
    path fails, value holds synthetic data and fallback_reason says why.
    """
    value: T
    source: str
    grid: Optional[GridPoint] = None
    fallback_reason: Optional[str] = None


def in_nws_coverage(lat: float, lon: float) -> bool:
    return (
        NWS_LAT_RANGE[0] <= lat <= NWS_LAT_RANGE[1]
        and NWS_LON_RANGE[0] <= lon <= NWS_LON_RANGE[1]
    )


class NWSClient:
    """
    api.weather.gov wrapper.

    NWS requires a descriptive User-Agent and serves GeoJSON.
    """

    def __init__(self, base_url: str, user_agent: str, timeout_s: float = 8.0):
        self.base = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.headers = {"User-Agent": user_agent, "Accept": "application/geo+json"}

    async def _get_json(self, url: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, headers=self.headers) as client:
                r = await client.get(url)
        except httpx.TimeoutException as exc:
            raise WeatherError(f"NWS request timed out: {url}") from exc
        except httpx.HTTPError as exc:
            raise WeatherError(f"NWS request failed: {exc}") from exc

        if r.status_code != 200:
            raise WeatherError(f"NWS request failed ({r.status_code}): {url}")

        try:
            data = r.json()
        except ValueError as exc:
            raise WeatherError(f"NWS returned invalid JSON: {url}") from exc
        if not isinstance(data, dict):
            raise WeatherError(f"Unexpected NWS response shape: {url}")
        return data

    async def point(self, lat: float, lon: float) -> GridPoint:
        """Resolve a coordinate to its grid reference."""
        data = await self._get_json(f"{self.base}/points/{lat:.4f},{lon:.4f}")
        props = data.get("properties") or {}
        try:
            place = (props.get("relativeLocation") or {}).get("properties") or {}
            return GridPoint(
                grid_id=str(props["gridId"]),
                grid_x=int(props["gridX"]),
                grid_y=int(props["gridY"]),
                forecast_url=str(props["forecast"]),
                forecast_hourly_url=str(props.get("forecastHourly") or ""),
                observation_stations_url=str(props.get("observationStations") or ""),
                city=place.get("city") or "",
                state=place.get("state") or "",
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise WeatherError("NWS grid lookup returned an incomplete point") from exc

    async def forecast(self, grid: GridPoint) -> List[Dict[str, Any]]:
        """Raw forecast periods for a grid reference, in feed order."""
        data = await self._get_json(grid.forecast_url)
        periods = (data.get("properties") or {}).get("periods")
        if not isinstance(periods, list) or not periods:
            raise WeatherError("NWS forecast contained no periods")
        return periods

    async def latest_observation(self, grid: GridPoint) -> Dict[str, Any]:
        """Latest observation properties from the first station serving the grid."""
        if not grid.observation_stations_url:
            raise WeatherError("NWS grid has no observation stations")

        stations = await self._get_json(grid.observation_stations_url)
        features = stations.get("features") or []
        if not features:
            raise WeatherError("NWS returned no observation stations")
        station_id = (features[0].get("properties") or {}).get("stationIdentifier")
        if not station_id:
            raise WeatherError("NWS station is missing its identifier")

        data = await self._get_json(f"{self.base}/stations/{station_id}/observations/latest")
        props = data.get("properties")
        if not isinstance(props, dict):
            raise WeatherError("NWS observation had no properties")
        return props


# ---------------------------------------------------------------------------
# NWS -> internal shape
# ---------------------------------------------------------------------------

# Checked in order; first keyword found in the forecast text wins.
ICON_KEYWORDS = [
    ("thunder", "11"),
    ("snow", "13"),
    ("sleet", "13"),
    ("flurr", "13"),
    ("fog", "50"),
    ("haze", "50"),
    ("smoke", "50"),
    ("shower", "09"),
    ("drizzle", "09"),
    ("rain", "10"),
    ("mostly cloudy", "04"),
    ("overcast", "04"),
    ("partly", "02"),
    ("cloudy", "03"),
    ("sunny", "01"),
    ("clear", "01"),
]


def icon_for_text(text: str, is_daytime: bool = True) -> str:
    """Map free-form NWS forecast text to an OpenWeather-style icon code."""
    lowered = (text or "").lower()
    code = "01"
    for keyword, candidate in ICON_KEYWORDS:
        if keyword in lowered:
            code = candidate
            break
    return code + ("d" if is_daytime else "n")


def parse_wind_speed(text: Any) -> Optional[float]:
    """'10 mph' -> 10, '5 to 15 mph' -> 15 (the upper bound)."""
    numbers = re.findall(r"\d+(?:\.\d+)?", str(text or ""))
    if not numbers:
        return None
    return max(float(n) for n in numbers)


def _value(measure: Any) -> Optional[float]:
    """NWS wraps numbers as {"unitCode": ..., "value": x}; value may be null."""
    if isinstance(measure, dict):
        measure = measure.get("value")
    if measure is None:
        return None
    try:
        return float(measure)
    except (TypeError, ValueError):
        return None


def period_from_nws(raw: Dict[str, Any], now: datetime, rng: random.Random) -> ForecastPeriod:
    """
    Map one NWS forecast period. NWS gives a single display temperature per
    period, so min/max are a +/-5 band around it; humidity and wind fall back
    to plausible random values when the period omits them.
    """
    temp = float(raw["temperature"])
    short = str(raw.get("shortForecast") or "")
    is_daytime = bool(raw.get("isDaytime", True))

    start = raw.get("startTime")
    try:
        when = datetime.fromisoformat(start) if start else now
    except (TypeError, ValueError):
        when = now

    humidity = _value(raw.get("relativeHumidity"))
    if humidity is None:
        humidity = 50 + rng.random() * 30
    wind = parse_wind_speed(raw.get("windSpeed"))
    if wind is None:
        wind = 5 + rng.random() * 15
    pop = _value(raw.get("probabilityOfPrecipitation"))

    return ForecastPeriod(
        time=when,
        temp=temp,
        temp_min=temp - 5,
        temp_max=temp + 5,
        humidity=round_half_up(humidity),
        condition=short,
        description=short.lower(),
        icon=icon_for_text(short, is_daytime),
        wind_speed=wind,
        pop=min(max((pop or 0.0) / 100, 0.0), 1.0),
    )


def apply_observation(baseline: ReadingData, obs: Dict[str, Any]) -> ReadingData:
    """
    Overlay an NWS observation (SI units) on a synthetic baseline. Fields the
    station did not report keep the baseline value; UV and sun times are
    never observed.
    """
    updates: Dict[str, Any] = {}

    temp_c = _value(obs.get("temperature"))
    if temp_c is not None:
        updates["temperature"] = celsius_to_fahrenheit(temp_c)
        apparent_c = _value(obs.get("heatIndex"))
        if apparent_c is None:
            apparent_c = _value(obs.get("windChill"))
        updates["feels_like"] = celsius_to_fahrenheit(apparent_c if apparent_c is not None else temp_c)

    humidity = _value(obs.get("relativeHumidity"))
    if humidity is not None:
        updates["humidity"] = round_half_up(humidity)

    wind_kmh = _value(obs.get("windSpeed"))
    if wind_kmh is not None:
        updates["wind_speed"] = kmh_to_mph(wind_kmh)

    wind_deg = _value(obs.get("windDirection"))
    if wind_deg is not None:
        updates["wind_direction"] = compass_point(wind_deg)

    pressure_pa = _value(obs.get("barometricPressure"))
    if pressure_pa is not None:
        updates["pressure"] = pascal_to_inhg(pressure_pa)

    visibility_m = _value(obs.get("visibility"))
    if visibility_m is not None:
        updates["visibility"] = meters_to_miles(visibility_m)

    text = obs.get("textDescription")
    if text:
        updates["condition"] = str(text).lower()
        updates["condition_icon"] = icon_for_text(str(text))

    precip_mm = _value(obs.get("precipitationLastHour"))
    if precip_mm is not None:
        updates["precipitation"] = round(precip_mm / 25.4, 2)

    return baseline.model_copy(update=updates)


class WeatherGateway:
    """
    Coordinate -> normalized weather, preferring NWS and always succeeding.

    live_enabled=False forces the synthetic path everywhere.
    use_observations=False keeps current conditions synthetic even after a
    successful grid lookup; the grid is still returned on the result.
    """

    def __init__(
        self,
        client: NWSClient,
        live_enabled: bool = True,
        use_observations: bool = False,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.live_enabled = live_enabled
        self.use_observations = use_observations
        self.clock = clock
        self.rng = rng or random.Random()

    def _live_eligible(self, lat: float, lon: float) -> bool:
        return self.live_enabled and in_nws_coverage(lat, lon)

    async def current_reading(self, lat: float, lon: float) -> GatewayResult[ReadingData]:
        baseline = generate_reading(lat, lon, now=self.clock(), rng=self.rng)
        if not self._live_eligible(lat, lon):
            return GatewayResult(baseline, SOURCE_SYNTHETIC)

        try:
            grid = await self.client.point(lat, lon)
        except WeatherError as e:
            logger.warning("NWS grid lookup failed for %.4f,%.4f: %s", lat, lon, e)
            return GatewayResult(baseline, SOURCE_SYNTHETIC, fallback_reason=str(e))

        if not self.use_observations:
            return GatewayResult(baseline, SOURCE_SYNTHETIC, grid=grid)

        try:
            obs = await self.client.latest_observation(grid)
        except WeatherError as e:
            logger.warning("NWS observation failed for grid %s/%s,%s: %s",
                           grid.grid_id, grid.grid_x, grid.grid_y, e)
            return GatewayResult(baseline, SOURCE_SYNTHETIC, grid=grid, fallback_reason=str(e))

        return GatewayResult(apply_observation(baseline, obs), SOURCE_NWS, grid=grid)

    async def forecast_periods(self, lat: float, lon: float) -> GatewayResult[List[ForecastPeriod]]:
        now = self.clock()
        if not self._live_eligible(lat, lon):
            feed = generate_forecast_feed(lat, lon, FORECAST_PERIODS, now=now, rng=self.rng)
            return GatewayResult(feed, SOURCE_SYNTHETIC)

        grid: Optional[GridPoint] = None
        try:
            grid = await self.client.point(lat, lon)
            raw = await self.client.forecast(grid)
            feed = [period_from_nws(p, now, self.rng) for p in raw[:FORECAST_PERIODS]]
        except (KeyError, TypeError, ValueError) as e:
            reason = f"malformed NWS forecast period: {e!r}"
            logger.warning("NWS forecast unusable for %.4f,%.4f: %s", lat, lon, reason)
        except WeatherError as e:
            reason = str(e)
            logger.warning("NWS forecast failed for %.4f,%.4f: %s", lat, lon, reason)
        else:
            return GatewayResult(feed, SOURCE_NWS, grid=grid)

        feed = generate_forecast_feed(lat, lon, FORECAST_PERIODS, now=now, rng=self.rng)
        return GatewayResult(feed, SOURCE_SYNTHETIC, grid=grid, fallback_reason=reason)

    async def place_name(self, lat: float, lon: float) -> Optional[GridPoint]:
        """Grid point (with city/state) for naming a new location, or None."""
        if not self._live_eligible(lat, lon):
            return None
        try:
            return await self.client.point(lat, lon)
        except WeatherError as e:
            logger.warning("NWS reverse lookup failed for %.4f,%.4f: %s", lat, lon, e)
            return None
