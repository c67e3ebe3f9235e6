"""WeatherAPI.com client for current conditions and multi-day forecasts.

Two endpoints are used:
1. /forecast.json?q={location}&days={n} -> location, current, forecast days
2. /search.json?q={partial} -> matching locations

The API key is read from config at call time. Nothing is retried: a
failed request surfaces as WeatherAPIError and the UI shows the message.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

import httpx

from weatherdash import config

logger = logging.getLogger(__name__)


class WeatherAPIError(Exception):
    """Raised when the weather API returns an error or unexpected response."""


class LocationRequiredError(WeatherAPIError):
    """Raised when no location was given for a forecast request."""


# Used when the user has neither searched nor saved a default location
DEFAULT_LOCATIONS = [
    "London, England, United Kingdom",
    "New York, NY, United States",
    "Tokyo, Japan",
    "Paris, France",
    "Sydney, NSW, Australia",
]


@dataclass(frozen=True)
class WeatherLocation:
    """Location metadata returned alongside the weather.

    Attributes:
        name: City or place name (e.g., "London").
        region: Region or state.
        country: Country name.
        latitude: Decimal latitude.
        longitude: Decimal longitude.
        localtime: Local wall-clock time as "YYYY-MM-DD H:MM".
        tz_id: IANA timezone name (e.g., "Europe/London").
    """

    name: str
    region: str
    country: str
    latitude: float
    longitude: float
    localtime: str = ""
    tz_id: str = ""


@dataclass(frozen=True)
class CurrentConditions:
    """Current weather readings for a location."""

    temp_c: float
    temp_f: float
    condition_text: str
    condition_icon: str = ""
    condition_code: int | None = None
    wind_kph: float = 0.0
    wind_mph: float = 0.0
    wind_dir: str = ""
    humidity: int = 0
    feelslike_c: float = 0.0
    feelslike_f: float = 0.0
    uv: float = 0.0
    is_day: bool = True


@dataclass(frozen=True)
class ForecastDay:
    """A single calendar day's aggregated forecast.

    Attributes:
        date: ISO date ("2026-01-06") in the location's timezone.
        maxtemp_c / maxtemp_f: Daily high.
        mintemp_c / mintemp_f: Daily low.
        condition_text: Summary (e.g., "Patchy rain possible").
        condition_icon: Icon path from the API.
        condition_code: WeatherAPI condition code.
        daily_chance_of_rain: Percentage 0-100.
        sunrise / sunset: Local times like "07:58 AM".
    """

    date: str
    maxtemp_c: float
    maxtemp_f: float
    mintemp_c: float
    mintemp_f: float
    condition_text: str
    condition_icon: str = ""
    condition_code: int | None = None
    daily_chance_of_rain: int = 0
    sunrise: str = ""
    sunset: str = ""


@dataclass(frozen=True)
class WeatherReport:
    """Complete forecast response: location, current reading, forecast days."""

    location: WeatherLocation
    current: CurrentConditions
    forecast_days: list[ForecastDay] = field(default_factory=list)

    @property
    def today(self) -> ForecastDay | None:
        return self.forecast_days[0] if self.forecast_days else None


@dataclass(frozen=True)
class LocationSuggestion:
    """A matching location from /search.json."""

    id: int
    name: str
    region: str
    country: str
    latitude: float
    longitude: float
    url: str = ""

    @property
    def label(self) -> str:
        return ", ".join(part for part in (self.name, self.region, self.country) if part)


def pick_fallback_location(rng: random.Random | None = None) -> str:
    """Pick a random well-known city when no location is specified."""
    chooser = rng or random
    return chooser.choice(DEFAULT_LOCATIONS)


def _create_client() -> httpx.Client:
    """Create an httpx client configured for WeatherAPI."""
    return httpx.Client(
        base_url=config.WEATHER_API_BASE_URL,
        headers={"Accept": "application/json"},
        timeout=config.WEATHER_REQUEST_TIMEOUT,
    )


def _require_api_key() -> str:
    api_key = config.get_weather_api_key()
    if not api_key:
        raise WeatherAPIError(
            "WEATHER_API_KEY is not set. "
            "Please set it in your environment to fetch weather data."
        )
    return api_key


def _get_json(client: httpx.Client, path: str, params: dict) -> dict | list:
    """GET a path and return the parsed JSON body.

    Raises:
        WeatherAPIError: On HTTP errors, timeouts, non-200 responses, or invalid JSON.
    """
    try:
        response = client.get(path, params=params)
    except httpx.TimeoutException:
        raise WeatherAPIError("Request to the weather service timed out. Please try again.")
    except httpx.HTTPError as exc:
        raise WeatherAPIError(f"HTTP error communicating with the weather service: {exc}")

    if response.status_code != 200:
        message = ""
        try:
            message = response.json().get("error", {}).get("message", "")
        except (ValueError, AttributeError):
            pass
        logger.error(
            "Weather API %s returned HTTP %s: %s", path, response.status_code, message
        )
        raise WeatherAPIError(
            message or f"Failed to fetch weather data (HTTP {response.status_code})."
        )

    try:
        return response.json()
    except ValueError:
        raise WeatherAPIError("Received invalid JSON from the weather service.")


def _parse_location(raw: dict) -> WeatherLocation:
    return WeatherLocation(
        name=raw.get("name", ""),
        region=raw.get("region", ""),
        country=raw.get("country", ""),
        latitude=raw.get("lat", 0.0),
        longitude=raw.get("lon", 0.0),
        localtime=raw.get("localtime", ""),
        tz_id=raw.get("tz_id", ""),
    )


def _parse_current(raw: dict) -> CurrentConditions:
    condition = raw.get("condition") or {}
    return CurrentConditions(
        temp_c=raw.get("temp_c", 0.0),
        temp_f=raw.get("temp_f", 0.0),
        condition_text=condition.get("text", ""),
        condition_icon=condition.get("icon", ""),
        condition_code=condition.get("code"),
        wind_kph=raw.get("wind_kph", 0.0),
        wind_mph=raw.get("wind_mph", 0.0),
        wind_dir=raw.get("wind_dir", ""),
        humidity=raw.get("humidity", 0),
        feelslike_c=raw.get("feelslike_c", 0.0),
        feelslike_f=raw.get("feelslike_f", 0.0),
        uv=raw.get("uv", 0.0),
        is_day=bool(raw.get("is_day", 1)),
    )


def _parse_forecast_days(data: dict) -> list[ForecastDay]:
    """Parse forecast days; a response without a forecast block yields []."""
    raw_days = (data.get("forecast") or {}).get("forecastday") or []

    days = []
    for d in raw_days:
        day = d.get("day") or {}
        condition = day.get("condition") or {}
        astro = d.get("astro") or {}
        days.append(
            ForecastDay(
                date=d.get("date", ""),
                maxtemp_c=day.get("maxtemp_c", 0.0),
                maxtemp_f=day.get("maxtemp_f", 0.0),
                mintemp_c=day.get("mintemp_c", 0.0),
                mintemp_f=day.get("mintemp_f", 0.0),
                condition_text=condition.get("text", ""),
                condition_icon=condition.get("icon", ""),
                condition_code=condition.get("code"),
                daily_chance_of_rain=int(day.get("daily_chance_of_rain", 0) or 0),
                sunrise=astro.get("sunrise", ""),
                sunset=astro.get("sunset", ""),
            )
        )
    return days


def get_weather(location: str, days: int | None = None) -> WeatherReport:
    """Fetch current conditions and the multi-day forecast for a location.

    Args:
        location: Free-form location (city, address, "lat,lon", postcode).
        days: Forecast days to request (defaults to config.WEATHER_FORECAST_DAYS).

    Returns:
        WeatherReport with location metadata, current reading, forecast days.

    Raises:
        LocationRequiredError: If the location is blank.
        WeatherAPIError: On API communication errors.
    """
    location = (location or "").strip()
    if not location:
        raise LocationRequiredError("Location parameter is required")

    api_key = _require_api_key()
    params = {
        "key": api_key,
        "q": location,
        "days": days or config.WEATHER_FORECAST_DAYS,
        "aqi": "no",
    }

    client = _create_client()
    try:
        data = _get_json(client, "/forecast.json", params)
    finally:
        client.close()

    try:
        report = WeatherReport(
            location=_parse_location(data["location"]),
            current=_parse_current(data["current"]),
            forecast_days=_parse_forecast_days(data),
        )
    except (KeyError, TypeError, AttributeError):
        raise WeatherAPIError("Unexpected forecast response format from the weather service.")

    logger.debug("Fetched weather for %s (%d forecast days)", location, len(report.forecast_days))
    return report


def search_locations(query: str) -> list[LocationSuggestion]:
    """Search WeatherAPI for locations matching a partial name.

    Returns an empty list for a blank query without making a request.
    """
    query = (query or "").strip()
    if not query:
        return []

    api_key = _require_api_key()
    client = _create_client()
    try:
        data = _get_json(client, "/search.json", {"key": api_key, "q": query})
    finally:
        client.close()

    if not isinstance(data, list):
        raise WeatherAPIError("Unexpected search response format from the weather service.")

    return [
        LocationSuggestion(
            id=item.get("id", 0),
            name=item.get("name", ""),
            region=item.get("region", ""),
            country=item.get("country", ""),
            latitude=item.get("lat", 0.0),
            longitude=item.get("lon", 0.0),
            url=item.get("url", ""),
        )
        for item in data
    ]
