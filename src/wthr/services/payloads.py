"""Upstream payload models for weather.gov and Nominatim responses.

Only the fields the service reads are modelled; everything else in the
GeoJSON documents is ignored.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wthr.services.units import round_half_away


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _null_to_blank(value: object) -> object:
    return "" if value is None else value


class PointMetadata(_Payload):
    """Properties of a ``/points/{lat},{lon}`` response."""

    grid_id: str = Field(default="", alias="gridId")
    grid_x: int = Field(default=0, alias="gridX")
    grid_y: int = Field(default=0, alias="gridY")
    forecast: str = ""
    forecast_hourly: str = Field(default="", alias="forecastHourly")
    observation_stations: str = Field(default="", alias="observationStations")
    county: str = ""


class ForecastPeriod(_Payload):
    """A single forecast period, daily or hourly."""

    name: str = ""
    start_time: str = Field(default="", alias="startTime")
    is_daytime: bool = Field(default=False, alias="isDaytime")
    temperature: int = 0
    temperature_unit: str = Field(default="", alias="temperatureUnit")
    precipitation_chance: int = Field(default=0, alias="probabilityOfPrecipitation")
    wind_speed: str = Field(default="", alias="windSpeed")
    wind_direction: str = Field(default="", alias="windDirection")
    icon: str = ""
    short_forecast: str = Field(default="", alias="shortForecast")
    detailed_forecast: str = Field(default="", alias="detailedForecast")

    blank_nulls = field_validator(
        "name",
        "start_time",
        "temperature_unit",
        "wind_speed",
        "wind_direction",
        "icon",
        "short_forecast",
        "detailed_forecast",
        mode="before",
    )(_null_to_blank)

    @field_validator("precipitation_chance", mode="before")
    @classmethod
    def _unwrap_quantity(cls, value: object) -> object:
        # weather.gov wraps this in {"unitCode": ..., "value": int | null}
        if isinstance(value, dict):
            value = value.get("value")
        return 0 if value is None else value

    @field_validator("temperature", mode="before")
    @classmethod
    def _round_temperature(cls, value: object) -> object:
        if isinstance(value, dict):
            value = value.get("value")
        if value is None:
            return 0
        if isinstance(value, float):
            return round_half_away(value)
        return value


class ForecastPayload(_Payload):
    """Ordered periods of a gridpoint forecast."""

    periods: list[ForecastPeriod] = Field(default_factory=list)


class AlertProperties(_Payload):
    """Properties of an active alert feature."""

    event: str = ""
    headline: str = ""
    description: str = ""
    severity: str = ""
    area_desc: str = Field(default="", alias="areaDesc")

    blank_nulls = field_validator("*", mode="before")(_null_to_blank)


class AlertFeature(_Payload):
    properties: AlertProperties = Field(default_factory=AlertProperties)

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: object) -> object:
        return {} if value is None else value


class AlertCollection(_Payload):
    """Feature collection returned by ``/alerts/active``."""

    features: list[AlertFeature] = Field(default_factory=list)

    @field_validator("features", mode="before")
    @classmethod
    def _null_features(cls, value: object) -> object:
        return [] if value is None else value


class StationFeature(_Payload):
    id: str = ""

    blank_nulls = field_validator("id", mode="before")(_null_to_blank)


class StationCollection(_Payload):
    """Feature collection of observation stations, nearest first."""

    features: list[StationFeature] = Field(default_factory=list)

    @field_validator("features", mode="before")
    @classmethod
    def _null_features(cls, value: object) -> object:
        return [] if value is None else value


class ObservationTemperature(_Payload):
    value: float | None = None
    unit_code: str = Field(default="", alias="unitCode")


class ObservationPayload(_Payload):
    """Properties of a station's latest observation."""

    temperature: ObservationTemperature = Field(default_factory=ObservationTemperature)
    text_description: str = Field(default="", alias="textDescription")


class GeocodeMatch(_Payload):
    lat: float
    lon: float


class ReverseAddress(_Payload):
    city: str = ""
    town: str = ""
    village: str = ""
    county: str = ""
    state: str = ""


class ReverseGeocodePayload(_Payload):
    display_name: str = ""
    address: ReverseAddress = Field(default_factory=ReverseAddress)
