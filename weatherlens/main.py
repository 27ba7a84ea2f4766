"""
FastAPI entrypoint.

This file focuses on:
- routing
- request/response handling
- wiring together DB + gateway + cache

Every error body is {"message": "..."}; the UI reads that key.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import timedelta
from typing import List, Optional, Tuple

from fastapi import FastAPI, Request, Depends, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .settings import settings
from .db import Base, SessionLocal, engine, get_db
from . import crud
from .cache import WeatherCache, utcnow
from .forecast import summarize_daily, summarize_hourly
from .schemas import (
    ForecastEntry,
    HourlyEntry,
    LocationOut,
    WeatherAlertOut,
    WeatherOut,
    WeatherReadingOut,
)
from .weather_clients import NWSClient, WeatherGateway

logger = logging.getLogger("weatherlens.api")
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# The default store is in-memory, so tables and sample data are created at import.
Base.metadata.create_all(bind=engine)
if settings.seed_sample_data:
    with SessionLocal() as _db:
        if crud.seed_defaults(_db, utcnow()):
            logger.info("Seeded default locations and alerts")

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Upstream wiring (constructed once).
nws = NWSClient(settings.nws_base_url, settings.nws_user_agent, timeout_s=settings.nws_timeout_s)
gateway = WeatherGateway(
    nws,
    live_enabled=settings.nws_enabled,
    use_observations=settings.nws_use_observations,
)
weather_cache = WeatherCache(gateway, staleness=timedelta(minutes=settings.staleness_minutes))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    dur_ms = (time.perf_counter() - start) * 1000.0
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, dur_ms)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"message": str(exc.detail)}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    first = (exc.errors() or [{}])[0]
    where = ".".join(str(p) for p in first.get("loc", ()) if p not in ("query", "path"))
    message = f"Invalid {where}: {first.get('msg', 'bad value')}" if where else "Invalid request"
    return JSONResponse({"message": message}, status_code=400)


def parse_coordinates(lat: Optional[str], lon: Optional[str]) -> Tuple[float, float]:
    """Numeric parse only; range is not checked (out-of-range goes synthetic)."""
    try:
        parsed = (float(lat), float(lon))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid coordinates")
    if not all(math.isfinite(v) for v in parsed):
        raise HTTPException(status_code=400, detail="Invalid coordinates")
    return parsed


def require_location(db: Session, location_id: str):
    location = crud.get_location(db, location_id)
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


# -------------------------
# Meta
# -------------------------

@app.get("/health", tags=["meta"])
async def health():
    return {"status": "ok", "version": settings.app_version}


# -------------------------
# Locations
# -------------------------

@app.get("/api/locations/search", response_model=List[LocationOut])
async def api_search_locations(q: Optional[str] = Query(None, max_length=255), db: Session = Depends(get_db)):
    """Substring search over name/state/zip, at most 5 results."""
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return [LocationOut.model_validate(loc) for loc in crud.search_locations(db, q.strip())]


@app.get("/api/locations/by-coordinates", response_model=LocationOut)
async def api_location_by_coordinates(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Location for a browser geolocation fix, created on first sight.
    Inside NWS coverage the grid lookup supplies a city name; otherwise the
    location is named after its coordinates.
    """
    lat_f, lon_f = parse_coordinates(lat, lon)

    existing = crud.get_location_by_coordinates(db, lat_f, lon_f)
    if existing is not None:
        return LocationOut.model_validate(existing)

    grid = await gateway.place_name(lat_f, lon_f)
    if grid is not None:
        location = crud.create_location(
            db,
            name=grid.city or grid.state or "Location",
            country="US",
            state=grid.state,
            lat=lat_f,
            lon=lon_f,
        )
    else:
        location = crud.create_location(
            db,
            name=f"Location ({lat_f:.2f}, {lon_f:.2f})",
            country="Unknown",
            state="",
            lat=lat_f,
            lon=lon_f,
        )
    return LocationOut.model_validate(location)


# -------------------------
# Weather
# -------------------------

@app.get("/api/weather/{location_id}", response_model=WeatherOut)
async def api_weather(location_id: str, db: Session = Depends(get_db)):
    """Current conditions, served from the store while fresh (30 min)."""
    location = require_location(db, location_id)
    reading = await weather_cache.current(db, location)
    if reading is None:
        raise HTTPException(status_code=503, detail="Weather data unavailable")
    return WeatherOut(
        location=LocationOut.model_validate(location),
        weather=WeatherReadingOut.model_validate(reading),
    )


@app.get("/api/alerts", response_model=List[WeatherAlertOut])
async def api_all_alerts(db: Session = Depends(get_db)):
    return [WeatherAlertOut.model_validate(a) for a in crud.get_all_active_alerts(db)]


@app.get("/api/alerts/{location_id}", response_model=List[WeatherAlertOut])
async def api_alerts(location_id: str, db: Session = Depends(get_db)):
    """Active alerts for a location id; an unknown id yields an empty list."""
    return [WeatherAlertOut.model_validate(a) for a in crud.get_active_alerts(db, location_id)]


@app.get("/api/forecast/{location_id}", response_model=List[ForecastEntry])
async def api_forecast(location_id: str, db: Session = Depends(get_db)):
    """Up to 5 daily cards."""
    location = require_location(db, location_id)
    periods = await weather_cache.forecast(location)
    if not periods:
        raise HTTPException(status_code=503, detail="Forecast data unavailable")
    return summarize_daily(periods, location.id)


@app.get("/api/hourly/{location_id}", response_model=List[HourlyEntry])
async def api_hourly(location_id: str, db: Session = Depends(get_db)):
    """The next 8 forecast slots."""
    location = require_location(db, location_id)
    periods = await weather_cache.forecast(location)
    if not periods:
        raise HTTPException(status_code=503, detail="Hourly forecast data unavailable")
    return summarize_hourly(periods, location.id)
