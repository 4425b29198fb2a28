"""weather.gov and Nominatim API client."""

from typing import Any, TypeVar

import httpx
from prometheus_client import Counter, Histogram
from pydantic import BaseModel, ValidationError

from wthr.config import Settings
from wthr.services.payloads import (
    AlertCollection,
    AlertProperties,
    ForecastPayload,
    GeocodeMatch,
    ObservationPayload,
    PointMetadata,
    ReverseGeocodePayload,
    StationCollection,
)

NWS_BASE_URL = "https://api.weather.gov"
NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class UpstreamError(Exception):
    """Raised when an upstream call fails or returns an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamTimeoutError(UpstreamError):
    """Raised when an upstream request times out."""


class NotFoundError(Exception):
    """Raised when geocoding yields no usable result."""


# Metrics
upstream_requests = Counter(
    "wthr_upstream_requests_total",
    "Total upstream API requests",
    ["endpoint", "status"],
)
upstream_duration = Histogram(
    "wthr_upstream_request_duration_seconds",
    "Upstream request duration in seconds",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


class UpstreamClient:
    """HTTP client for the weather.gov API and Nominatim geocoding.

    Holds no state between calls apart from its configuration.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize client with settings."""
        self._timeout = settings.upstream_timeout_seconds
        self._headers = {
            "User-Agent": settings.nws_user_agent,
            "Accept": "application/geo+json",
        }

    async def _get_json(
        self,
        endpoint: str,
        url: str,
        params: dict[str, str] | None = None,
    ) -> Any:
        """GET a URL and decode its JSON body.

        Raises:
            UpstreamTimeoutError: If the request times out
            UpstreamError: On transport failure, non-2xx status or bad JSON
        """
        with upstream_duration.labels(endpoint=endpoint).time():
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, headers=self._headers
                ) as client:
                    response = await client.get(url, params=params)
            except httpx.TimeoutException as e:
                upstream_requests.labels(endpoint=endpoint, status="timeout").inc()
                raise UpstreamTimeoutError(
                    f"{endpoint} request timed out after {self._timeout}s"
                ) from e
            except httpx.RequestError as e:
                upstream_requests.labels(endpoint=endpoint, status="error").inc()
                raise UpstreamError(f"{endpoint} request failed: {e}") from e

        if not response.is_success:
            upstream_requests.labels(endpoint=endpoint, status="error").inc()
            raise UpstreamError(
                f"{endpoint} returned {response.status_code}: {response.reason_phrase}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            upstream_requests.labels(endpoint=endpoint, status="invalid").inc()
            raise UpstreamError(f"{endpoint} returned malformed JSON: {e}") from e

        upstream_requests.labels(endpoint=endpoint, status="success").inc()
        return data

    @staticmethod
    def _parse(endpoint: str, model: type[PayloadT], data: Any) -> PayloadT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(f"{endpoint} returned an unexpected payload: {e}") from e

    @staticmethod
    def _properties(endpoint: str, data: Any) -> Any:
        if not isinstance(data, dict):
            raise UpstreamError(f"{endpoint} returned an unexpected payload")
        return data.get("properties") or {}

    async def get_point_metadata(self, lat: float, lon: float) -> PointMetadata:
        """Fetch gridpoint metadata and forecast URLs for coordinates.

        Raises:
            UpstreamError: If the point cannot be resolved
        """
        data = await self._get_json("points", f"{NWS_BASE_URL}/points/{lat:.4f},{lon:.4f}")
        return self._parse("points", PointMetadata, self._properties("points", data))

    async def get_forecast(self, url: str) -> ForecastPayload:
        """Fetch a daily or hourly gridpoint forecast from its URL."""
        data = await self._get_json("forecast", url)
        return self._parse("forecast", ForecastPayload, self._properties("forecast", data))

    async def get_alerts(self, lat: float, lon: float) -> list[AlertProperties]:
        """Fetch active alerts for a point, in upstream order."""
        data = await self._get_json(
            "alerts",
            f"{NWS_BASE_URL}/alerts/active",
            params={"point": f"{lat:.4f},{lon:.4f}"},
        )
        collection = self._parse("alerts", AlertCollection, data)
        return [feature.properties for feature in collection.features]

    async def get_observation_stations(self, url: str) -> list[str]:
        """Fetch identifiers of observation stations near a point, nearest first."""
        data = await self._get_json("stations", url)
        collection = self._parse("stations", StationCollection, data)
        return [feature.id for feature in collection.features if feature.id]

    async def get_latest_observation(self, station_url: str) -> ObservationPayload:
        """Fetch the most recent observation from a station."""
        url = station_url.rstrip("/") + "/observations/latest"
        data = await self._get_json("observation", url)
        return self._parse(
            "observation", ObservationPayload, self._properties("observation", data)
        )

    async def geocode(self, query: str) -> tuple[float, float]:
        """Resolve a free-text place query to coordinates.

        Raises:
            NotFoundError: If Nominatim has no match
            UpstreamError: If the lookup itself fails
        """
        data = await self._get_json(
            "geocode",
            f"{NOMINATIM_BASE_URL}/search",
            params={"q": query, "format": "json", "limit": "1"},
        )
        if not isinstance(data, list) or not data:
            raise NotFoundError(f"location not found: {query}")
        match = self._parse("geocode", GeocodeMatch, data[0])
        return match.lat, match.lon

    async def reverse_geocode(self, lat: float, lon: float) -> str:
        """Find a human-readable label for coordinates.

        Prefers city, town, village, then county, each followed by the state
        when known, and finally the full display name.

        Raises:
            NotFoundError: If the response carries nothing usable
        """
        data = await self._get_json(
            "reverse_geocode",
            f"{NOMINATIM_BASE_URL}/reverse",
            params={
                "format": "json",
                "lat": f"{lat:.6f}",
                "lon": f"{lon:.6f}",
                "zoom": "10",
                "addressdetails": "1",
            },
        )
        if not isinstance(data, dict):
            raise NotFoundError("location not found")
        payload = self._parse("reverse_geocode", ReverseGeocodePayload, data)
        address = payload.address

        place = address.city or address.town or address.village or address.county
        if place:
            return f"{place}, {address.state}" if address.state else place
        if payload.display_name:
            return payload.display_name
        raise NotFoundError("location not found")
