"""Centralized configuration loaded from environment variables.

All settings are read from environment variables with sensible defaults.
A local .env file is loaded first if present. Secret values (API keys,
Supabase project credentials) also check Streamlit secrets (st.secrets)
so the app works on Streamlit Cloud without extra wiring.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _get_secret(key: str) -> str:
    """Read a secret lazily so st.secrets is ready.

    Must be called at runtime (not import time) because Streamlit
    Cloud only makes st.secrets available after the app starts.
    """
    try:
        import streamlit as st
        if hasattr(st, "secrets") and key in st.secrets:
            return str(st.secrets[key])
    except Exception:
        pass
    return os.environ.get(key, "")


def get_weather_api_key() -> str:
    """WeatherAPI.com key used for forecast and location search."""
    return _get_secret("WEATHER_API_KEY")


def get_google_maps_api_key() -> str:
    """Google Maps key for Places autocomplete. Empty means use Nominatim."""
    return _get_secret("GOOGLE_MAPS_API_KEY")


def get_supabase_url() -> str:
    return _get_secret("SUPABASE_URL").rstrip("/")


def get_supabase_anon_key() -> str:
    return _get_secret("SUPABASE_ANON_KEY")


def _get_int(key: str, default: int) -> int:
    """Read an integer environment variable with a default."""
    return int(os.environ.get(key, str(default)))


def _get_float(key: str, default: float) -> float:
    """Read a float environment variable with a default."""
    return float(os.environ.get(key, str(default)))


# WeatherAPI.com
WEATHER_API_BASE_URL: str = os.environ.get(
    "WEATHER_API_BASE_URL", "https://api.weatherapi.com/v1"
)
WEATHER_REQUEST_TIMEOUT: int = _get_int("WEATHER_REQUEST_TIMEOUT", 10)
WEATHER_FORECAST_DAYS: int = _get_int("WEATHER_FORECAST_DAYS", 3)

# Google Places autocomplete
PLACES_API_BASE_URL: str = os.environ.get(
    "PLACES_API_BASE_URL", "https://maps.googleapis.com/maps/api/place"
)
PLACES_REQUEST_TIMEOUT: int = _get_int("PLACES_REQUEST_TIMEOUT", 10)
AUTOCOMPLETE_DEBOUNCE_SECONDS: float = _get_float("AUTOCOMPLETE_DEBOUNCE_SECONDS", 1.0)

# Nominatim (suggestion fallback when no Google key is configured)
NOMINATIM_USER_AGENT: str = os.environ.get(
    "NOMINATIM_USER_AGENT", "weatherdash-app"
)
NOMINATIM_TIMEOUT: int = _get_int("NOMINATIM_TIMEOUT", 10)

# OpenAI-compatible completion API; the key itself is per user (see settings)
OPENAI_BASE_URL: str = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL: str = os.environ.get("OPENAI_MODEL", "gpt-3.5-turbo")
CHAT_MAX_TOKENS: int = _get_int("CHAT_MAX_TOKENS", 150)
CHAT_TEMPERATURE: float = _get_float("CHAT_TEMPERATURE", 0.7)

# Supabase
SUPABASE_REQUEST_TIMEOUT: int = _get_int("SUPABASE_REQUEST_TIMEOUT", 10)
SETTINGS_TABLE: str = os.environ.get("SETTINGS_TABLE", "user_settings")

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


def configure_logging() -> None:
    """Configure the root logger once. Safe to call on every Streamlit rerun."""
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
