"""Weather service orchestrating cache, upstream client and normalizer."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import structlog
from cachetools import TTLCache
from fastapi.concurrency import run_in_threadpool
from prometheus_client import Counter
from pydantic import ValidationError

from wthr.api.schemas import WeatherSnapshot
from wthr.config import Settings
from wthr.services.cache import CacheError, WeatherCacheStore, make_key
from wthr.services.normalizer import (
    Available,
    SourceResult,
    Unavailable,
    merge,
)
from wthr.services.payloads import AlertProperties, ForecastPayload, ObservationPayload
from wthr.services.units import round_half_away
from wthr.services.upstream import NotFoundError, UpstreamClient, UpstreamError

logger = structlog.get_logger()

COORDINATE_PRECISION = 100  # two decimal places, about 1.1 km
GEOCODE_CACHE_TTL_SECONDS = 3600

degraded_fetches = Counter(
    "wthr_degraded_fetches_total",
    "Best-effort upstream fetches that were skipped or failed",
    ["source"],
)


def round_coordinate(value: float) -> float:
    """Round a coordinate to the cache precision, ties away from zero."""
    return round_half_away(value * COORDINATE_PRECISION) / COORDINATE_PRECISION


def validate_coordinates(lat: float, lon: float) -> None:
    """Raise ValueError for coordinates outside the valid range."""
    if not -90 <= lat <= 90:
        raise ValueError(f"latitude out of range: {lat}")
    if not -180 <= lon <= 180:
        raise ValueError(f"longitude out of range: {lon}")


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class WeatherService:
    """Service for fetching weather snapshots with caching.

    Concurrent requests that round to the same coordinates share a single
    upstream fetch.
    """

    def __init__(
        self,
        cache: WeatherCacheStore,
        client: UpstreamClient,
        settings: Settings,
    ) -> None:
        """Initialize service with cache, client and settings."""
        self._cache = cache
        self._client = client
        self._ttl = timedelta(seconds=settings.cache_ttl_seconds)
        self._geocode_cache: TTLCache[str, tuple[float, float]] = TTLCache(
            maxsize=settings.geocode_cache_size,
            ttl=GEOCODE_CACHE_TTL_SECONDS,
        )
        self._in_flight: dict[str, asyncio.Task[WeatherSnapshot]] = {}

    async def get_weather(self, lat: float, lon: float) -> WeatherSnapshot:
        """Get a weather snapshot for coordinates.

        Checks the cache first and fetches from upstream on a miss. Cache
        failures of any kind are logged and treated as a miss.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            Current conditions, forecast, hourly strip and alerts

        Raises:
            ValueError: If the coordinates are out of range
            UpstreamError: If point metadata or the daily forecast is unavailable
        """
        validate_coordinates(lat, lon)
        r_lat = round_coordinate(lat)
        r_lon = round_coordinate(lon)
        key = make_key(r_lat, r_lon)

        cached = await self._read_cache(r_lat, r_lon)
        if cached is not None:
            logger.info("Cache hit for weather request", key=key, cache_hit=True)
            return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.info("Joining in-flight weather fetch", key=key)
            return await asyncio.shield(pending)

        logger.info("Cache miss, fetching from upstream", key=key, cache_hit=False)
        task = asyncio.ensure_future(self._fetch_and_store(r_lat, r_lon))
        self._in_flight[key] = task
        task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return await asyncio.shield(task)

    async def geocode(self, query: str) -> tuple[float, float]:
        """Resolve a free-text location to coordinates.

        Raises:
            NotFoundError: If no place matches
            UpstreamError: If the geocoder cannot be reached
        """
        normalized = " ".join(query.lower().split())
        coords = self._geocode_cache.get(normalized)
        if coords is None:
            coords = await self._client.geocode(query)
            self._geocode_cache[normalized] = coords
        return coords

    async def _read_cache(self, lat: float, lon: float) -> WeatherSnapshot | None:
        try:
            entry = await run_in_threadpool(self._cache.get, lat, lon)
        except CacheError as e:
            logger.warning("Cache read failed, fetching fresh data", error=str(e))
            return None
        if entry is None:
            return None

        try:
            snapshot = WeatherSnapshot.model_validate_json(entry.data)
        except ValidationError as e:
            logger.warning("Discarding undecodable cache entry", lat=lat, lon=lon, error=str(e))
            return None

        return snapshot.model_copy(
            update={
                "cachedAt": _as_utc(entry.created_at),
                "expiresAt": _as_utc(entry.expires_at),
            }
        )

    async def _fetch_and_store(self, lat: float, lon: float) -> WeatherSnapshot:
        snapshot = await self._fetch_fresh(lat, lon)
        try:
            await run_in_threadpool(
                self._cache.set, lat, lon, snapshot.model_dump_json(), self._ttl
            )
        except CacheError as e:
            logger.warning("Failed to update cache", lat=lat, lon=lon, error=str(e))
        return snapshot

    async def _fetch_fresh(self, lat: float, lon: float) -> WeatherSnapshot:
        """Run the upstream call sequence for already-rounded coordinates."""
        point = await self._client.get_point_metadata(lat, lon)
        if not point.forecast:
            raise UpstreamError("point metadata has no forecast URL")

        hourly = await self._fetch_hourly(point.forecast_hourly)
        observation = await self._fetch_observation(point.observation_stations)

        daily = await self._client.get_forecast(point.forecast)
        alerts = await self._fetch_alerts(lat, lon)

        snapshot = merge(
            Available(daily),
            hourly,
            alerts,
            observation,
            cached_at=datetime.now(UTC),
            ttl=self._ttl,
        )

        try:
            snapshot.location = await self._client.reverse_geocode(lat, lon)
        except (UpstreamError, NotFoundError) as e:
            degraded_fetches.labels(source="reverse_geocode").inc()
            logger.warning("Reverse geocode failed", lat=lat, lon=lon, error=str(e))

        return snapshot

    async def _fetch_hourly(self, url: str) -> SourceResult[ForecastPayload]:
        if not url:
            return Unavailable("point metadata has no hourly forecast URL")
        try:
            return Available(await self._client.get_forecast(url))
        except UpstreamError as e:
            degraded_fetches.labels(source="hourly").inc()
            logger.warning("Failed to get hourly forecast", error=str(e))
            return Unavailable(str(e))

    async def _fetch_observation(self, stations_url: str) -> SourceResult[ObservationPayload]:
        if not stations_url:
            return Unavailable("point metadata has no observation stations URL")
        try:
            stations = await self._client.get_observation_stations(stations_url)
        except UpstreamError as e:
            degraded_fetches.labels(source="stations").inc()
            logger.warning("Failed to get observation stations", error=str(e))
            return Unavailable(str(e))
        if not stations:
            return Unavailable("no observation stations near point")

        try:
            return Available(await self._client.get_latest_observation(stations[0]))
        except UpstreamError as e:
            degraded_fetches.labels(source="observation").inc()
            logger.warning("Failed to get latest observation", station=stations[0], error=str(e))
            return Unavailable(str(e))

    async def _fetch_alerts(self, lat: float, lon: float) -> list[AlertProperties]:
        try:
            return await self._client.get_alerts(lat, lon)
        except UpstreamError as e:
            degraded_fetches.labels(source="alerts").inc()
            logger.warning("Failed to get alerts", lat=lat, lon=lon, error=str(e))
            return []
