"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine
from sqlalchemy.orm import sessionmaker

from wthr.config import Settings, get_settings
from wthr.db import create_db_engine, init_schema, make_session_factory
from wthr.services.cache import WeatherCacheStore
from wthr.services.places import PlaceService
from wthr.services.upstream import UpstreamClient
from wthr.services.weather import WeatherService

# Singleton instances for services
_engine: Engine | None = None
_session_factory: sessionmaker | None = None
_upstream_client: UpstreamClient | None = None
_weather_service: WeatherService | None = None


def get_engine(settings: Annotated[Settings, Depends(get_settings)]) -> Engine:
    """Get database engine (singleton), creating the schema on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(settings.database_url)
        init_schema(_engine)
    return _engine


def get_session_factory(engine: Annotated[Engine, Depends(get_engine)]) -> sessionmaker:
    """Get session factory (singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(engine)
    return _session_factory


def get_cache_store(
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> WeatherCacheStore:
    """Get weather cache store."""
    return WeatherCacheStore(session_factory)


def get_upstream_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> UpstreamClient:
    """Get upstream client instance (singleton)."""
    global _upstream_client
    if _upstream_client is None:
        _upstream_client = UpstreamClient(settings)
    return _upstream_client


def get_weather_service(
    settings: Annotated[Settings, Depends(get_settings)],
    cache: Annotated[WeatherCacheStore, Depends(get_cache_store)],
    client: Annotated[UpstreamClient, Depends(get_upstream_client)],
) -> WeatherService:
    """Get weather service instance (singleton, it tracks in-flight fetches)."""
    global _weather_service
    if _weather_service is None:
        _weather_service = WeatherService(cache, client, settings)
    return _weather_service


def get_place_service(
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> PlaceService:
    """Get place search service."""
    return PlaceService(session_factory)


# Type aliases for dependency injection
CacheDep = Annotated[WeatherCacheStore, Depends(get_cache_store)]
WeatherServiceDep = Annotated[WeatherService, Depends(get_weather_service)]
PlaceServiceDep = Annotated[PlaceService, Depends(get_place_service)]


def reset_singletons() -> None:
    """Reset singleton instances (for testing)."""
    global _engine, _session_factory, _upstream_client, _weather_service
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
    _upstream_client = None
    _weather_service = None
