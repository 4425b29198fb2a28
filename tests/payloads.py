"""Canned weather.gov and Nominatim payloads shared by the tests."""

from typing import Any

LAT = 39.74
LON = -104.99

NWS = "https://api.weather.gov"
POINT_URL = f"{NWS}/points/39.7400,-104.9900"
FORECAST_URL = f"{NWS}/gridpoints/BOU/62,60/forecast"
HOURLY_URL = f"{NWS}/gridpoints/BOU/62,60/forecast/hourly"
STATIONS_URL = f"{NWS}/gridpoints/BOU/62,60/stations"
STATION_ID = f"{NWS}/stations/KDEN"
OBSERVATION_URL = f"{NWS}/stations/KDEN/observations/latest"
ALERTS_URL = f"{NWS}/alerts/active"
SEARCH_URL = "https://nominatim.openstreetmap.org/search"
REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"


def make_period(
    name: str,
    temperature: int,
    is_daytime: bool = True,
    start_time: str = "2024-01-15T15:00:00-07:00",
    icon: str = "https://api.weather.gov/icons/land/day/skc?size=medium",
    precipitation: int | None = 10,
    short_forecast: str = "Sunny",
) -> dict[str, Any]:
    return {
        "name": name,
        "startTime": start_time,
        "isDaytime": is_daytime,
        "temperature": temperature,
        "temperatureUnit": "F",
        "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": precipitation},
        "windSpeed": "10 mph",
        "windDirection": "NW",
        "icon": icon,
        "shortForecast": short_forecast,
        "detailedForecast": f"{short_forecast}, with a high near {temperature}.",
    }


def point_payload() -> dict[str, Any]:
    return {
        "properties": {
            "gridId": "BOU",
            "gridX": 62,
            "gridY": 60,
            "forecast": FORECAST_URL,
            "forecastHourly": HOURLY_URL,
            "observationStations": STATIONS_URL,
        }
    }


def daily_payload() -> dict[str, Any]:
    return {
        "properties": {
            "periods": [
                make_period("Today", 70, short_forecast="Sunny"),
                make_period(
                    "Tonight",
                    50,
                    is_daytime=False,
                    icon="https://api.weather.gov/icons/land/night/few?size=medium",
                    precipitation=30,
                    short_forecast="Clear",
                ),
                make_period(
                    "Tuesday",
                    72,
                    icon="https://api.weather.gov/icons/land/day/rain?size=medium",
                    short_forecast="Rain",
                ),
            ]
        }
    }


def hourly_payload() -> dict[str, Any]:
    return {
        "properties": {
            "periods": [
                make_period(
                    "",
                    65 + i,
                    start_time=f"2024-01-15T{15 + i}:00:00-07:00",
                    icon="https://api.weather.gov/icons/land/day/sct?size=small",
                    short_forecast="Partly Sunny",
                )
                for i in range(7)
            ]
        }
    }


def observation_payload(value: float | None = 20.0, unit_code: str = "wmoUnit:degC") -> dict:
    return {
        "properties": {
            "temperature": {"unitCode": unit_code, "value": value},
            "textDescription": "Clear",
        }
    }


def alerts_payload() -> dict[str, Any]:
    return {
        "features": [
            {
                "properties": {
                    "event": "Winter Storm Warning",
                    "headline": "Winter Storm Warning until 6 PM",
                    "description": "Heavy snow expected.",
                    "severity": "Severe",
                    "areaDesc": "Denver",
                }
            }
        ]
    }


def reverse_payload() -> dict[str, Any]:
    return {
        "display_name": "Denver, Colorado, United States",
        "address": {"city": "Denver", "state": "Colorado", "county": "Denver County"},
    }
