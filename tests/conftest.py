"""Shared test fixtures for WeatherAPI response data and service credentials."""

import pytest

from weatherdash.auth import Session
from weatherdash.weather_client import (
    CurrentConditions,
    ForecastDay,
    WeatherLocation,
    WeatherReport,
)


@pytest.fixture(autouse=True)
def service_env(monkeypatch):
    """Point every client at known credentials; no Google key unless a test sets one."""
    monkeypatch.setenv("WEATHER_API_KEY", "test-weather-key")
    monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)


@pytest.fixture()
def session():
    return Session(
        access_token="access-123",
        refresh_token="refresh-123",
        user_id="user-1",
        email="ada@example.com",
    )


@pytest.fixture()
def forecast_response():
    """Sample WeatherAPI /forecast.json response for London with three days."""
    return {
        "location": {
            "name": "London",
            "region": "City of London, Greater London",
            "country": "United Kingdom",
            "lat": 51.52,
            "lon": -0.11,
            "tz_id": "Europe/London",
            "localtime": "2026-01-06 14:30",
        },
        "current": {
            "temp_c": 8.0,
            "temp_f": 46.4,
            "is_day": 1,
            "condition": {
                "text": "Partly cloudy",
                "icon": "//cdn.weatherapi.com/weather/64x64/day/116.png",
                "code": 1003,
            },
            "wind_mph": 9.4,
            "wind_kph": 15.1,
            "wind_dir": "SW",
            "humidity": 76,
            "feelslike_c": 5.2,
            "feelslike_f": 41.4,
            "uv": 1.0,
        },
        "forecast": {
            "forecastday": [
                {
                    "date": "2026-01-06",
                    "day": {
                        "maxtemp_c": 9.1,
                        "maxtemp_f": 48.4,
                        "mintemp_c": 4.3,
                        "mintemp_f": 39.7,
                        "daily_chance_of_rain": 20,
                        "condition": {
                            "text": "Partly cloudy",
                            "icon": "//cdn.weatherapi.com/weather/64x64/day/116.png",
                            "code": 1003,
                        },
                    },
                    "astro": {"sunrise": "08:05 AM", "sunset": "04:06 PM"},
                },
                {
                    "date": "2026-01-07",
                    "day": {
                        "maxtemp_c": 7.0,
                        "maxtemp_f": 44.6,
                        "mintemp_c": 2.5,
                        "mintemp_f": 36.5,
                        "daily_chance_of_rain": 85,
                        "condition": {
                            "text": "Moderate rain",
                            "icon": "//cdn.weatherapi.com/weather/64x64/day/302.png",
                            "code": 1189,
                        },
                    },
                    "astro": {"sunrise": "08:05 AM", "sunset": "04:07 PM"},
                },
                {
                    "date": "2026-01-08",
                    "day": {
                        "maxtemp_c": 5.5,
                        "maxtemp_f": 41.9,
                        "mintemp_c": -0.5,
                        "mintemp_f": 31.1,
                        "daily_chance_of_rain": 0,
                        "condition": {
                            "text": "Sunny",
                            "icon": "//cdn.weatherapi.com/weather/64x64/day/113.png",
                            "code": 1000,
                        },
                    },
                    "astro": {"sunrise": "08:04 AM", "sunset": "04:09 PM"},
                },
            ]
        },
    }


@pytest.fixture()
def search_response():
    """Sample WeatherAPI /search.json response."""
    return [
        {
            "id": 2801268,
            "name": "London",
            "region": "City of London, Greater London",
            "country": "United Kingdom",
            "lat": 51.52,
            "lon": -0.11,
            "url": "london-city-of-london-greater-london-united-kingdom",
        },
        {
            "id": 315398,
            "name": "London",
            "region": "Ontario",
            "country": "Canada",
            "lat": 42.98,
            "lon": -81.25,
            "url": "london-ontario-canada",
        },
    ]


@pytest.fixture()
def sample_report():
    """A parsed WeatherReport matching forecast_response."""
    return WeatherReport(
        location=WeatherLocation(
            name="London",
            region="City of London, Greater London",
            country="United Kingdom",
            latitude=51.52,
            longitude=-0.11,
            localtime="2026-01-06 14:30",
            tz_id="Europe/London",
        ),
        current=CurrentConditions(
            temp_c=8.0,
            temp_f=46.4,
            condition_text="Partly cloudy",
            condition_code=1003,
            wind_kph=15.1,
            wind_mph=9.4,
            wind_dir="SW",
            humidity=76,
            feelslike_c=5.2,
            feelslike_f=41.4,
            uv=1.0,
        ),
        forecast_days=[
            ForecastDay(
                date="2026-01-06",
                maxtemp_c=9.1,
                maxtemp_f=48.4,
                mintemp_c=4.3,
                mintemp_f=39.7,
                condition_text="Partly cloudy",
                condition_code=1003,
                daily_chance_of_rain=20,
                sunrise="08:05 AM",
                sunset="04:06 PM",
            ),
            ForecastDay(
                date="2026-01-07",
                maxtemp_c=7.0,
                maxtemp_f=44.6,
                mintemp_c=2.5,
                mintemp_f=36.5,
                condition_text="Moderate rain",
                condition_code=1189,
                daily_chance_of_rain=85,
            ),
        ],
    )
