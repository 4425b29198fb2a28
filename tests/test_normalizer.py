"""Tests for the snapshot normalizer."""

import locale
import math
from datetime import UTC, datetime, timedelta

import pytest

from tests.payloads import make_period
from wthr.services.normalizer import (
    Available,
    Unavailable,
    format_hour_label,
    map_icon,
    merge,
    observation_temperature,
    round_half_away,
)
from wthr.services.payloads import AlertProperties, ForecastPayload, ObservationPayload

NOW = datetime(2024, 1, 15, 22, 0, tzinfo=UTC)
TTL = timedelta(hours=1)
MISSING = Unavailable("not fetched")


def forecast(*periods: dict) -> Available[ForecastPayload]:
    return Available(ForecastPayload.model_validate({"periods": list(periods)}))


def observation(value: float | None, unit_code: str) -> Available[ObservationPayload]:
    return Available(
        ObservationPayload.model_validate(
            {"temperature": {"value": value, "unitCode": unit_code}, "textDescription": "Clear"}
        )
    )


def run_merge(daily=MISSING, hourly=MISSING, alerts=None, obs=MISSING):
    return merge(daily, hourly, alerts or [], obs, cached_at=NOW, ttl=TTL)


class TestDailyForecast:
    """Tests for day/night pairing."""

    def test_pairs_day_with_following_night(self) -> None:
        """A day, its night and an unpaired day yield two entries."""
        snapshot = run_merge(
            daily=forecast(
                make_period("Monday", 70),
                make_period("Monday Night", 50, is_daytime=False),
                make_period("Tuesday", 72),
            )
        )

        assert [(d.name, d.highTemp, d.lowTemp) for d in snapshot.forecast] == [
            ("Monday", 70, 50),
            ("Tuesday", 72, 72),
        ]

    def test_pair_takes_higher_precipitation_chance(self) -> None:
        """Paired entries report the wetter of the two periods."""
        snapshot = run_merge(
            daily=forecast(
                make_period("Monday", 70, precipitation=20),
                make_period("Monday Night", 50, is_daytime=False, precipitation=60),
            )
        )

        assert snapshot.forecast[0].precipitationChance == 60

    def test_leading_night_stands_alone(self) -> None:
        """A forecast issued in the evening starts with an unpaired night."""
        snapshot = run_merge(
            daily=forecast(
                make_period("Tonight", 40, is_daytime=False),
                make_period("Tuesday", 65),
                make_period("Tuesday Night", 45, is_daytime=False),
            )
        )

        assert [(d.highTemp, d.lowTemp) for d in snapshot.forecast] == [(40, 40), (65, 45)]

    def test_caps_at_five_days(self) -> None:
        """Fourteen periods still produce only five days."""
        periods = []
        for day in range(7):
            periods.append(make_period(f"Day {day}", 70 + day))
            periods.append(make_period(f"Night {day}", 50 + day, is_daytime=False))

        snapshot = run_merge(daily=forecast(*periods))

        assert len(snapshot.forecast) == 5
        assert snapshot.forecast[-1].name == "Day 4"

    def test_null_precipitation_is_zero(self) -> None:
        """weather.gov sends null when no precipitation is expected."""
        snapshot = run_merge(daily=forecast(make_period("Monday", 70, precipitation=None)))

        assert snapshot.forecast[0].precipitationChance == 0


class TestCurrentConditions:
    """Tests for current conditions and today's range."""

    def test_prefers_first_hourly_period(self) -> None:
        """Hourly data wins over the daily forecast."""
        snapshot = run_merge(
            daily=forecast(make_period("Today", 70, short_forecast="Sunny")),
            hourly=forecast(make_period("", 64, short_forecast="Cloudy")),
        )

        assert snapshot.current.temperature == 64
        assert snapshot.current.shortForecast == "Cloudy"
        assert snapshot.current.windSpeed == "10 mph"
        assert snapshot.current.windDirection == "NW"

    def test_falls_back_to_daily_period(self) -> None:
        """Without hourly data the first daily period is used."""
        snapshot = run_merge(daily=forecast(make_period("Today", 70, short_forecast="Sunny")))

        assert snapshot.current.temperature == 70
        assert snapshot.current.shortForecast == "Sunny"
        assert snapshot.hourly == []

    def test_today_range_spans_first_two_periods(self) -> None:
        """High and low cover today and tonight."""
        snapshot = run_merge(
            daily=forecast(
                make_period("Today", 70),
                make_period("Tonight", 48, is_daytime=False),
                make_period("Tuesday", 90),
            )
        )

        assert snapshot.current.highTemp == 70
        assert snapshot.current.lowTemp == 48

    def test_empty_when_nothing_available(self) -> None:
        """No forecast and no observation leaves zero values."""
        snapshot = run_merge()

        assert snapshot.current.temperature == 0
        assert snapshot.current.temperatureUnit == ""
        assert snapshot.forecast == []


class TestObservationOverride:
    """Tests for live observation handling."""

    def test_celsius_converted_to_fahrenheit(self) -> None:
        """20 degC reads as 68 F."""
        snapshot = run_merge(
            daily=forecast(make_period("Today", 70)),
            obs=observation(20.0, "wmoUnit:degC"),
        )

        assert snapshot.current.temperature == 68
        assert snapshot.current.temperatureUnit == "F"

    def test_override_keeps_forecast_fields(self) -> None:
        """Only temperature and unit come from the observation."""
        snapshot = run_merge(
            hourly=forecast(make_period("", 64, short_forecast="Cloudy", precipitation=40)),
            obs=observation(20.0, "wmoUnit:degC"),
        )

        assert snapshot.current.temperature == 68
        assert snapshot.current.shortForecast == "Cloudy"
        assert snapshot.current.precipitationChance == 40
        assert snapshot.current.icon == "sunny"

    def test_seeds_range_without_forecasts(self) -> None:
        """High and low follow the observation when no forecast exists."""
        snapshot = run_merge(obs=observation(20.0, "wmoUnit:degC"))

        assert snapshot.current.temperature == 68
        assert snapshot.current.highTemp == 68
        assert snapshot.current.lowTemp == 68

    def test_does_not_touch_range_with_forecast(self) -> None:
        """A forecast-derived range is left alone."""
        snapshot = run_merge(
            daily=forecast(make_period("Today", 70), make_period("Tonight", 50, is_daytime=False)),
            obs=observation(30.0, "wmoUnit:degC"),
        )

        assert snapshot.current.temperature == 86
        assert (snapshot.current.highTemp, snapshot.current.lowTemp) == (70, 50)

    @pytest.mark.parametrize("value", [None, math.nan])
    def test_missing_reading_is_ignored(self, value: float | None) -> None:
        """Null and NaN readings leave the forecast temperature in place."""
        snapshot = run_merge(
            daily=forecast(make_period("Today", 70)),
            obs=observation(value, "wmoUnit:degC"),
        )

        assert snapshot.current.temperature == 70


class TestObservationTemperature:
    """Tests for unit handling of observation temperatures."""

    @pytest.mark.parametrize(
        ("value", "unit_code", "expected"),
        [
            (20.0, "wmoUnit:degC", (68, "F")),
            (0.0, "degC", (32, "F")),
            (37.0, "degC", (99, "F")),
            (-10.0, "degC", (14, "F")),
            (68.5, "degF", (69, "F")),
            (-0.5, "wmoUnit:degF", (-1, "F")),
            (273.4, "wmoUnit:degK", (273, "degK")),
            (12.5, "kelvin", (13, "kelvin")),
        ],
    )
    def test_units(self, value: float, unit_code: str, expected: tuple[int, str]) -> None:
        """Celsius converts, Fahrenheit rounds, anything else passes through."""
        obs = observation(value, unit_code).value

        assert observation_temperature(obs) == expected

    def test_none_observation(self) -> None:
        """No observation, no reading."""
        assert observation_temperature(None) is None


class TestHourly:
    """Tests for the hourly strip."""

    def test_caps_at_five_in_order(self) -> None:
        """Seven periods yield the first five."""
        periods = [
            make_period(f"P{i}", 60 + i, start_time=f"2024-01-15T{13 + i}:00:00-07:00")
            for i in range(7)
        ]

        snapshot = run_merge(hourly=forecast(*periods))

        assert len(snapshot.hourly) == 5
        assert snapshot.hourly[4].temperature == 64
        assert [h.time for h in snapshot.hourly] == ["1 PM", "2 PM", "3 PM", "4 PM", "5 PM"]

    @pytest.mark.parametrize(
        ("start_time", "expected"),
        [
            ("2024-01-15T15:00:00-07:00", "3 PM"),
            ("2024-01-15T00:00:00Z", "12 AM"),
            ("2024-01-15T12:30:00+00:00", "12 PM"),
            ("2024-01-15T09:00:00-05:00", "9 AM"),
            ("", "Fallback"),
            ("2024/01/15 15:00:00", "Fallback"),
            ("2024-01-15", "Fallback"),
            ("2024-01-15T15:00:00", "Fallback"),
            ("not a time", "Fallback"),
        ],
    )
    def test_hour_label(self, start_time: str, expected: str) -> None:
        """Only offset-qualified timestamps become hour labels."""
        assert format_hour_label(start_time, "Fallback") == expected

    def test_hour_label_ignores_locale(self) -> None:
        """AM/PM suffixes stay English whatever LC_TIME says."""
        previous = locale.setlocale(locale.LC_TIME)
        try:
            locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
        except locale.Error:
            pytest.skip("de_DE.UTF-8 locale not installed")
        try:
            labels = [
                format_hour_label("2024-01-15T09:00:00-07:00", "Fallback"),
                format_hour_label("2024-01-15T21:00:00-07:00", "Fallback"),
            ]
        finally:
            locale.setlocale(locale.LC_TIME, previous)

        assert labels == ["9 AM", "9 PM"]


class TestIcons:
    """Tests for icon mapping."""

    @pytest.mark.parametrize(
        ("icon_url", "is_daytime", "expected"),
        [
            ("https://api.weather.gov/icons/land/day/skc?size=medium", True, "sunny"),
            ("https://api.weather.gov/icons/land/night/skc?size=medium", False, "clear_night"),
            ("https://api.weather.gov/icons/land/day/few", True, "sunny"),
            ("https://api.weather.gov/icons/land/day/sct", True, "partly_cloudy_day"),
            ("https://api.weather.gov/icons/land/night/bkn", False, "partly_cloudy_night"),
            ("https://api.weather.gov/icons/land/night/ovc", False, "cloud"),
            ("https://api.weather.gov/icons/land/day/rain,40", True, "rainy"),
            ("https://api.weather.gov/icons/land/day/showers", True, "rainy"),
            ("https://api.weather.gov/icons/land/day/tsra,60", True, "thunderstorm"),
            ("https://api.weather.gov/icons/land/day/snow", True, "weather_snowy"),
            ("https://api.weather.gov/icons/land/day/fog", True, "foggy"),
            ("https://api.weather.gov/icons/land/day/wind_skc", True, "air"),
            ("https://api.weather.gov/icons/land/day/hot", True, "thermostat"),
            ("", True, "thermostat"),
        ],
    )
    def test_map_icon(self, icon_url: str, is_daytime: bool, expected: str) -> None:
        """Icon URLs map by keyword with day/night variants."""
        assert map_icon(icon_url, is_daytime) == expected


class TestMerge:
    """Tests for whole-snapshot properties."""

    def test_alerts_pass_through_in_order(self) -> None:
        """Alerts keep upstream order and fields."""
        alerts = [
            AlertProperties.model_validate(
                {"event": "Flood Watch", "headline": None, "areaDesc": "Boulder"}
            ),
            AlertProperties.model_validate({"event": "Wind Advisory", "severity": "Moderate"}),
        ]

        snapshot = run_merge(alerts=alerts)

        assert [a.event for a in snapshot.alerts] == ["Flood Watch", "Wind Advisory"]
        assert snapshot.alerts[0].headline == ""
        assert snapshot.alerts[0].areaDesc == "Boulder"

    def test_deterministic(self) -> None:
        """Same inputs give byte-identical output."""
        daily = forecast(make_period("Today", 70), make_period("Tonight", 50, is_daytime=False))
        hourly = forecast(make_period("", 64))
        obs = observation(20.0, "wmoUnit:degC")

        first = run_merge(daily=daily, hourly=hourly, obs=obs)
        second = run_merge(daily=daily, hourly=hourly, obs=obs)

        assert first.model_dump_json() == second.model_dump_json()

    def test_freshness_window(self) -> None:
        """Snapshots expire one TTL after they were produced."""
        snapshot = run_merge()

        assert snapshot.cachedAt == NOW
        assert snapshot.expiresAt == NOW + TTL


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, -1), (-2.5, -3), (2.4, 2), (-2.4, -2), (0.0, 0)],
)
def test_round_half_away(value: float, expected: int) -> None:
    """Ties round away from zero, unlike the built-in round()."""
    assert round_half_away(value) == expected
