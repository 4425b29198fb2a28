"""Merge upstream forecast, observation and alert payloads into one snapshot.

Everything here is pure: no I/O, no clock reads. The caller supplies the
timestamps that mark the snapshot's freshness window.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

import structlog

from wthr.api.schemas import (
    Alert,
    CurrentConditions,
    DailyForecast,
    HourlyForecast,
    WeatherSnapshot,
)
from wthr.services.payloads import (
    AlertProperties,
    ForecastPayload,
    ForecastPeriod,
    ObservationPayload,
)
from wthr.services.units import celsius_to_fahrenheit, round_half_away

logger = structlog.get_logger()

T = TypeVar("T")

MAX_DAILY_ENTRIES = 5
MAX_HOURLY_ENTRIES = 5

# Checked in order; the first keyword found in the icon URL wins.
# Tuples are (day icon, night icon).
ICON_KEYWORDS: list[tuple[tuple[str, ...], tuple[str, str]]] = [
    (("/skc", "/few"), ("sunny", "clear_night")),
    (("/sct", "/bkn"), ("partly_cloudy_day", "partly_cloudy_night")),
    (("/ovc",), ("cloud", "cloud")),
    (("/rain", "/showers"), ("rainy", "rainy")),
    (("/tsra",), ("thunderstorm", "thunderstorm")),
    (("/snow",), ("weather_snowy", "weather_snowy")),
    (("/fog",), ("foggy", "foggy")),
    (("/wind",), ("air", "air")),
]
FALLBACK_ICON = "thermostat"


@dataclass(frozen=True)
class Available(Generic[T]):
    """A data source that was fetched successfully."""

    value: T


@dataclass(frozen=True)
class Unavailable:
    """A data source that could not be fetched, and why."""

    reason: str


SourceResult = Available[T] | Unavailable


def map_icon(icon_url: str, is_daytime: bool) -> str:
    """Map a weather.gov icon URL to a Material Symbols icon name."""
    for keywords, (day_icon, night_icon) in ICON_KEYWORDS:
        if any(keyword in icon_url for keyword in keywords):
            return day_icon if is_daytime else night_icon
    return FALLBACK_ICON


def format_hour_label(start_time: str, fallback: str) -> str:
    """Format an RFC 3339 timestamp as a 12-hour label such as ``3 PM``.

    Timestamps without a UTC offset, or that fail to parse, yield the
    fallback instead.
    """
    if not start_time or "T" not in start_time:
        return fallback
    try:
        parsed = datetime.fromisoformat(start_time)
    except ValueError:
        return fallback
    if parsed.tzinfo is None:
        return fallback
    hour = parsed.hour % 12 or 12
    suffix = "AM" if parsed.hour < 12 else "PM"
    return f"{hour} {suffix}"


def observation_temperature(observation: ObservationPayload | None) -> tuple[int, str] | None:
    """Extract an integer temperature and display unit from an observation.

    Celsius readings are converted to Fahrenheit. Unknown unit codes are
    passed through with the part after the last colon as the unit label.
    Returns None when there is no usable reading.
    """
    if observation is None:
        return None
    value = observation.temperature.value
    if value is None or math.isnan(value):
        return None

    unit_code = observation.temperature.unit_code
    if unit_code.endswith("degC"):
        return round_half_away(celsius_to_fahrenheit(value)), "F"
    if unit_code.endswith("degF"):
        return round_half_away(value), "F"

    _, sep, suffix = unit_code.rpartition(":")
    if sep and suffix:
        display_unit = suffix
    else:
        display_unit = unit_code
        logger.warning("Unrecognized temperature unit code", unit_code=unit_code)
    return round_half_away(value), display_unit


def _periods(source: SourceResult[ForecastPayload]) -> list[ForecastPeriod]:
    if isinstance(source, Available):
        return source.value.periods
    return []


def _current_from_period(period: ForecastPeriod) -> CurrentConditions:
    return CurrentConditions(
        temperature=period.temperature,
        temperatureUnit=period.temperature_unit,
        shortForecast=period.short_forecast,
        precipitationChance=period.precipitation_chance,
        windSpeed=period.wind_speed,
        windDirection=period.wind_direction,
        icon=map_icon(period.icon, period.is_daytime),
    )


def _hourly_entries(periods: list[ForecastPeriod]) -> list[HourlyForecast]:
    return [
        HourlyForecast(
            time=format_hour_label(period.start_time, period.name),
            temperature=period.temperature,
            temperatureUnit=period.temperature_unit,
            shortForecast=period.short_forecast,
            icon=map_icon(period.icon, period.is_daytime),
            precipitationChance=period.precipitation_chance,
        )
        for period in periods[:MAX_HOURLY_ENTRIES]
    ]


def _daily_entries(periods: list[ForecastPeriod]) -> list[DailyForecast]:
    """Pair each daytime period with the night that follows it."""
    entries: list[DailyForecast] = []
    i = 0
    while i < len(periods) and len(entries) < MAX_DAILY_ENTRIES:
        period = periods[i]
        high = low = period.temperature
        precip = period.precipitation_chance

        if period.is_daytime and i + 1 < len(periods) and not periods[i + 1].is_daytime:
            night = periods[i + 1]
            low = night.temperature
            precip = max(precip, night.precipitation_chance)
            i += 1

        entries.append(
            DailyForecast(
                name=period.name,
                highTemp=high,
                lowTemp=low,
                temperatureUnit=period.temperature_unit,
                shortForecast=period.short_forecast,
                icon=map_icon(period.icon, period.is_daytime),
                precipitationChance=precip,
            )
        )
        i += 1
    return entries


def merge(
    daily: SourceResult[ForecastPayload],
    hourly: SourceResult[ForecastPayload],
    alerts: list[AlertProperties],
    observation: SourceResult[ObservationPayload],
    *,
    cached_at: datetime,
    ttl: timedelta,
) -> WeatherSnapshot:
    """Merge upstream payloads into a single weather snapshot.

    Current conditions come from the first hourly period, else the first
    daily period. A live observation, when it has a temperature, replaces
    only the current temperature and unit.
    """
    daily_periods = _periods(daily)
    hourly_periods = _periods(hourly)

    if hourly_periods:
        current = _current_from_period(hourly_periods[0])
    elif daily_periods:
        current = _current_from_period(daily_periods[0])
    else:
        current = CurrentConditions()

    if daily_periods:
        today = [p.temperature for p in daily_periods[:2]]
        current.highTemp = max(today)
        current.lowTemp = min(today)

    observed = observation_temperature(
        observation.value if isinstance(observation, Available) else None
    )
    if observed is not None:
        current.temperature, current.temperatureUnit = observed
        if not daily_periods and not hourly_periods:
            current.highTemp = current.lowTemp = current.temperature

    return WeatherSnapshot(
        current=current,
        forecast=_daily_entries(daily_periods),
        hourly=_hourly_entries(hourly_periods),
        alerts=[
            Alert(
                event=alert.event,
                headline=alert.headline,
                description=alert.description,
                severity=alert.severity,
                areaDesc=alert.area_desc,
            )
            for alert in alerts
        ],
        cachedAt=cached_at,
        expiresAt=cached_at + ttl,
    )
