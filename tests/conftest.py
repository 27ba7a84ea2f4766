from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from weatherlens import crud, main
from weatherlens.cache import utcnow
from weatherlens.db import Base, SessionLocal, engine

NWS = "https://api.weather.gov"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_store() -> Iterator[None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        crud.seed_defaults(session, utcnow())
    main.weather_cache.clear()
    yield
    main.weather_cache.clear()


@pytest.fixture
def db() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def offline(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main.gateway, "live_enabled", False)


@pytest.fixture
def client(offline: None) -> Iterator[TestClient]:
    with TestClient(main.app) as test_client:
        yield test_client


def point_payload(city: str = "Hoboken", state: str = "NJ") -> dict:
    base = f"{NWS}/gridpoints/OKX/33,35"
    return {
        "properties": {
            "gridId": "OKX",
            "gridX": 33,
            "gridY": 35,
            "forecast": f"{base}/forecast",
            "forecastHourly": f"{base}/forecast/hourly",
            "observationStations": f"{base}/stations",
            "relativeLocation": {"properties": {"city": city, "state": state}},
        }
    }
