"""API request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CurrentConditions(BaseModel):
    """Current conditions, plus today's high and low."""

    temperature: int = Field(default=0, description="Current temperature")
    temperatureUnit: str = Field(default="", description="Temperature unit symbol")  # noqa: N815
    shortForecast: str = Field(default="", description="Short textual description")  # noqa: N815
    precipitationChance: int = Field(  # noqa: N815
        default=0, description="Precipitation probability in percent"
    )
    windSpeed: str = Field(default="", description="Wind speed as supplied upstream")  # noqa: N815
    windDirection: str = Field(default="", description="Wind direction as supplied upstream")  # noqa: N815
    icon: str = Field(default="", description="Icon identifier")
    highTemp: int = Field(default=0, description="Today's high temperature")  # noqa: N815
    lowTemp: int = Field(default=0, description="Today's low temperature")  # noqa: N815


class DailyForecast(BaseModel):
    """One day of the multi-day forecast."""

    name: str = Field(..., description="Period label, e.g. Monday")
    highTemp: int  # noqa: N815
    lowTemp: int  # noqa: N815
    temperatureUnit: str  # noqa: N815
    shortForecast: str  # noqa: N815
    icon: str
    precipitationChance: int  # noqa: N815


class HourlyForecast(BaseModel):
    """One near-term hourly entry."""

    time: str = Field(..., description="Hour label, e.g. 3 PM")
    temperature: int
    temperatureUnit: str  # noqa: N815
    shortForecast: str  # noqa: N815
    icon: str
    precipitationChance: int  # noqa: N815


class Alert(BaseModel):
    """Active weather alert."""

    event: str = ""
    headline: str = ""
    description: str = ""
    severity: str = ""
    areaDesc: str = ""  # noqa: N815


class WeatherSnapshot(BaseModel):
    """Weather API response."""

    current: CurrentConditions = Field(default_factory=CurrentConditions)
    forecast: list[DailyForecast] = Field(default_factory=list, max_length=5)
    hourly: list[HourlyForecast] = Field(default_factory=list, max_length=5)
    alerts: list[Alert] = Field(default_factory=list)
    location: str | None = Field(default=None, description="Reverse-geocoded place name")
    cachedAt: datetime = Field(..., description="When the snapshot was fetched")  # noqa: N815
    expiresAt: datetime = Field(..., description="When the snapshot goes stale")  # noqa: N815


class Place(BaseModel):
    """Place search result."""

    name: str
    state: str
    zip: str = ""
    latitude: float
    longitude: float


class AppInterestRequest(BaseModel):
    """Mobile app interest form submission."""

    model_config = ConfigDict(extra="forbid")

    email: str = ""
    android: bool = False
    ios: bool = False
    country: str = ""


class StatusResponse(BaseModel):
    """Generic acknowledgement."""

    status: str = Field(..., description="Status")


class ErrorDetail(BaseModel):
    """Error detail."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Error response."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str = Field(..., description="Readiness status")
    checks: dict[str, str] = Field(default_factory=dict, description="Component checks")
