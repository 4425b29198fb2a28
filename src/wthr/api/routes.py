"""API route definitions."""

from typing import Annotated

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy.exc import SQLAlchemyError

from wthr.api.dependencies import CacheDep, PlaceServiceDep, WeatherServiceDep
from wthr.api.schemas import (
    AppInterestRequest,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    Place,
    ReadinessResponse,
    StatusResponse,
    WeatherSnapshot,
)
from wthr.services.upstream import NotFoundError, UpstreamError, UpstreamTimeoutError

logger = structlog.get_logger()

# Root router for landing page
root_router = APIRouter(tags=["root"])

# API router for weather, search and sign-up endpoints
api_router = APIRouter(prefix="/api/v1", tags=["weather"])

# Health router for health checks
health_router = APIRouter(prefix="/health", tags=["health"])


LANDING_PAGE_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>wthr.lol</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #10151f;
            min-height: 100vh;
            color: #e8e8e8;
            display: flex;
            justify-content: center;
        }
        main { width: 100%; max-width: 560px; padding: 2rem 1rem; }
        h1 { font-size: 2rem; margin-bottom: 1rem; color: #4facfe; }
        form { display: flex; gap: 0.5rem; margin-bottom: 1.5rem; }
        input {
            flex: 1;
            padding: 0.6rem;
            border-radius: 4px;
            border: 1px solid #333;
            background: #1b2230;
            color: inherit;
        }
        button {
            padding: 0.6rem 1rem;
            border: 1px solid #4facfe;
            border-radius: 4px;
            background: transparent;
            color: #4facfe;
            cursor: pointer;
        }
        .now { font-size: 3rem; margin: 0.5rem 0; }
        .muted { color: #888; }
        .alert { background: #5c1e1e; padding: 0.75rem; border-radius: 4px; margin: 1rem 0; }
        ul { list-style: none; }
        li { display: flex; justify-content: space-between; padding: 0.4rem 0; border-bottom: 1px solid #222; }
        .error { color: #ff6b6b; }
    </style>
</head>
<body>
    <main>
        <h1>wthr.lol</h1>
        <form id="search">
            <input id="location" name="location" placeholder="City, state or ZIP" autocomplete="off">
            <button type="submit">Go</button>
        </form>
        <section id="weather" class="muted">Search for a place to see the weather.</section>
    </main>
    <script>
        const out = document.getElementById("weather");
        const esc = (s) => String(s ?? "").replace(/[&<>"']/g, (c) => `&#${c.charCodeAt(0)};`);
        function render(w) {
            const c = w.current;
            let html = `<p class="muted">${esc(w.location || "")}</p>`;
            html += `<p class="now">${c.temperature}&deg;${esc(c.temperatureUnit)}</p>`;
            html += `<p>${esc(c.shortForecast)} &middot; H ${c.highTemp}&deg; L ${c.lowTemp}&deg;</p>`;
            for (const a of w.alerts) html += `<div class="alert"><strong>${esc(a.event)}</strong><br>${esc(a.headline)}</div>`;
            html += "<ul>" + w.hourly.map((h) => `<li><span>${esc(h.time)}</span><span>${h.temperature}&deg;</span></li>`).join("") + "</ul>";
            html += "<ul>" + w.forecast.map((d) => `<li><span>${esc(d.name)}</span><span>${d.highTemp}&deg; / ${d.lowTemp}&deg;</span></li>`).join("") + "</ul>";
            out.className = "";
            out.innerHTML = html;
        }
        async function load(params) {
            out.textContent = "Loading...";
            const res = await fetch("/api/v1/weather?" + new URLSearchParams(params));
            const body = await res.json();
            if (!res.ok) {
                out.className = "error";
                out.textContent = body.detail?.error?.message || "Failed to retrieve weather data";
                return;
            }
            render(body);
        }
        document.getElementById("search").addEventListener("submit", (e) => {
            e.preventDefault();
            const q = document.getElementById("location").value.trim();
            if (q) load({ location: q });
        });
        if (navigator.geolocation) {
            navigator.geolocation.getCurrentPosition((p) => load({ lat: p.coords.latitude, lon: p.coords.longitude }));
        }
    </script>
</body>
</html>
"""


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(),
    )


@root_router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def landing_page() -> str:
    """Landing page with the weather search form."""
    return LANDING_PAGE_HTML


@api_router.get(
    "/weather",
    response_model=WeatherSnapshot,
    responses={
        400: {"model": ErrorResponse, "description": "No location given"},
        404: {"model": ErrorResponse, "description": "Location not found"},
        502: {"model": ErrorResponse, "description": "Upstream API error"},
        504: {"model": ErrorResponse, "description": "Upstream timeout"},
    },
)
async def get_weather(
    weather_service: WeatherServiceDep,
    lat: Annotated[float | None, Query(ge=-90, le=90, description="Latitude")] = None,
    lon: Annotated[float | None, Query(ge=-180, le=180, description="Longitude")] = None,
    location: Annotated[
        str | None, Query(max_length=200, description="Free-text place name")
    ] = None,
) -> WeatherSnapshot:
    """Get current conditions, forecast and alerts for a point.

    Takes either ``location`` or both ``lat`` and ``lon``; ``location`` wins
    when both are given. Results are cached for an hour per ~1 km cell.
    """
    if location and location.strip():
        try:
            lat, lon = await weather_service.geocode(location.strip())
        except NotFoundError as e:
            logger.info("Location not found", location=location)
            raise _error(
                status.HTTP_404_NOT_FOUND,
                "LOCATION_NOT_FOUND",
                f"Location not found: {location.strip()}",
            ) from e
        except UpstreamError as e:
            logger.error("Geocoding failed", location=location, error=str(e))
            raise _error(
                status.HTTP_502_BAD_GATEWAY,
                "GEOCODING_ERROR",
                "Failed to look up location",
            ) from e
    elif lat is None or lon is None:
        raise _error(
            status.HTTP_400_BAD_REQUEST,
            "MISSING_LOCATION",
            "Please provide a location",
        )

    try:
        return await weather_service.get_weather(lat, lon)

    except ValueError as e:
        raise _error(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_COORDINATES",
            str(e),
        ) from e

    except UpstreamTimeoutError as e:
        logger.error("Upstream timeout", lat=lat, lon=lon, error=str(e))
        raise _error(
            status.HTTP_504_GATEWAY_TIMEOUT,
            "UPSTREAM_TIMEOUT",
            "Weather service request timed out",
        ) from e

    except UpstreamError as e:
        logger.error(
            "Upstream API error",
            lat=lat,
            lon=lon,
            status_code=e.status_code,
            error=str(e),
        )
        raise _error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_ERROR",
            "Failed to retrieve weather data",
        ) from e


@api_router.get("/search", response_model=list[Place])
def search_places(
    places: PlaceServiceDep,
    q: Annotated[str, Query(max_length=200, description="Place name or ZIP prefix")] = "",
) -> list[Place]:
    """Autocomplete places from the imported gazetteer."""
    if len(q.strip()) < 2:
        return []
    try:
        return places.search_places(q)
    except SQLAlchemyError as e:
        logger.error("Place search failed", query=q, error=str(e))
        raise _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "SEARCH_FAILED",
            "Place search failed",
        ) from e


@api_router.post(
    "/app-interest",
    response_model=StatusResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid submission"}},
)
def register_app_interest(places: PlaceServiceDep, payload: AppInterestRequest) -> StatusResponse:
    """Record interest in the mobile apps."""
    if not payload.email.strip():
        raise _error(status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "Email is required")
    if not payload.android and not payload.ios:
        raise _error(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_REQUEST",
            "Please select at least one OS",
        )

    try:
        places.save_app_interest(
            payload.email.strip(), payload.android, payload.ios, payload.country
        )
    except SQLAlchemyError as e:
        logger.error("Failed to save app interest", error=str(e))
        raise _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "STORAGE_ERROR",
            "Failed to save submission",
        ) from e
    return StatusResponse(status="ok")


@health_router.get("/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe - checks if the service is running."""
    return HealthResponse(status="ok")


@health_router.get("/ready", response_model=ReadinessResponse)
def readiness(cache: CacheDep) -> ReadinessResponse:
    """Readiness probe - checks that the database answers."""
    database_status = "ok" if cache.is_healthy() else "degraded"

    response = ReadinessResponse(
        status=database_status,
        checks={"database": database_status},
    )

    if database_status != "ok":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response.model_dump(),
        )

    return response
