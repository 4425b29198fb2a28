"""Test fixtures."""

from collections.abc import Iterator

import pytest
import respx
from fastapi.testclient import TestClient
from httpx import Response
from sqlalchemy.orm import sessionmaker

from tests import payloads
from wthr.api.dependencies import reset_singletons
from wthr.config import Settings, get_settings
from wthr.db import create_db_engine, init_schema, make_session_factory
from wthr.main import create_app
from wthr.services.cache import WeatherCacheStore
from wthr.services.upstream import UpstreamClient


@pytest.fixture
def upstream() -> Iterator[respx.MockRouter]:
    """Mock every upstream endpoint with a healthy response.

    Routes are named so tests can override or inspect them, e.g.
    ``upstream["alerts"].mock(return_value=Response(500))``.
    """
    with respx.mock(assert_all_called=False) as router:
        router.get(payloads.POINT_URL, name="points").mock(
            return_value=Response(200, json=payloads.point_payload())
        )
        router.get(payloads.FORECAST_URL, name="daily").mock(
            return_value=Response(200, json=payloads.daily_payload())
        )
        router.get(payloads.HOURLY_URL, name="hourly").mock(
            return_value=Response(200, json=payloads.hourly_payload())
        )
        router.get(payloads.STATIONS_URL, name="stations").mock(
            return_value=Response(200, json={"features": [{"id": payloads.STATION_ID}]})
        )
        router.get(payloads.OBSERVATION_URL, name="observation").mock(
            return_value=Response(200, json=payloads.observation_payload())
        )
        router.get(payloads.ALERTS_URL, name="alerts").mock(
            return_value=Response(200, json=payloads.alerts_payload())
        )
        router.get(payloads.REVERSE_URL, name="reverse").mock(
            return_value=Response(200, json=payloads.reverse_payload())
        )
        router.get(payloads.SEARCH_URL, name="geocode").mock(
            return_value=Response(200, json=[{"lat": "39.74", "lon": "-104.99"}])
        )
        yield router


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        upstream_timeout_seconds=1.0,
        log_level="DEBUG",
        log_format="text",
    )


@pytest.fixture
def session_factory(settings: Settings) -> Iterator[sessionmaker]:
    """Session factory over a fresh database file."""
    engine = create_db_engine(settings.database_url)
    init_schema(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def cache_store(session_factory: sessionmaker) -> WeatherCacheStore:
    """Create test cache store."""
    return WeatherCacheStore(session_factory)


@pytest.fixture
def upstream_client(settings: Settings) -> UpstreamClient:
    """Create test upstream client."""
    return UpstreamClient(settings)


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Create test application backed by a temporary database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'app.db'}")
    reset_singletons()
    get_settings.cache_clear()
    yield create_app()
    reset_singletons()
    get_settings.cache_clear()


@pytest.fixture
def client(app) -> TestClient:
    """Create test client."""
    return TestClient(app)
