"""Display formatting helpers shared by the UI and the chat prompt.

All functions here are pure: no network, no Streamlit.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from zoneinfo import ZoneInfo


def _round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (toward +inf)."""
    return math.floor(value + 0.5)


def format_temperature(temp: float, unit: str = "C") -> str:
    """Format a temperature as e.g. '73°F'."""
    return f"{_round_half_up(temp)}\u00b0{unit}"


def kph_to_mph(kph: float | None) -> int | None:
    """Convert km/h to mph, rounded to a whole number."""
    if kph is None:
        return None
    return _round_half_up(kph * 0.621371)


def format_date(date_str: str, tz_id: str | None = None) -> str:
    """Render an ISO date as 'Mon, Jan 6'.

    A bare date ('2026-01-06') is a calendar day in the location's own
    zone and is rendered as-is. A datetime with an offset is converted
    into ``tz_id`` before taking its calendar day.
    """
    if "T" not in date_str and " " not in date_str.strip():
        day = date.fromisoformat(date_str.strip())
    else:
        dt = datetime.fromisoformat(date_str.strip())
        if tz_id and dt.tzinfo is not None:
            dt = dt.astimezone(ZoneInfo(tz_id))
        day = dt.date()
    return f"{day.strftime('%a')}, {day.strftime('%b')} {day.day}"


def _parse_localtime(localtime: str, tz_id: str | None) -> datetime:
    """Parse WeatherAPI's 'YYYY-MM-DD H:MM' local time string."""
    dt = datetime.strptime(localtime.strip(), "%Y-%m-%d %H:%M")
    if tz_id:
        dt = dt.replace(tzinfo=ZoneInfo(tz_id))
    return dt


def format_local_time(localtime: str, tz_id: str | None = None) -> str:
    """'2026-01-06 14:30' -> '2:30 PM'."""
    dt = _parse_localtime(localtime, tz_id)
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def format_weekday(localtime: str, tz_id: str | None = None) -> str:
    """'2026-01-06 14:30' -> 'Tuesday'."""
    return _parse_localtime(localtime, tz_id).strftime("%A")


def weather_icon_url(icon: str) -> str:
    """WeatherAPI returns protocol-relative icon paths ('//cdn...')."""
    if icon.startswith("//"):
        return f"https:{icon}"
    return icon


# ---------------------------------------------------------------------------
# WeatherAPI condition code -> emoji
# ---------------------------------------------------------------------------

_SUN = "\u2600\ufe0f"
_CLOUD = "\u2601\ufe0f"
_RAIN = "\U0001f327\ufe0f"
_SNOW = "\U0001f328\ufe0f"
_STORM = "\u26c8\ufe0f"
_FOG = "\U0001f32b\ufe0f"

_CLOUD_CODES = {1003, 1006, 1009}
_FOG_CODES = {1030, 1135, 1147}
_STORM_CODES = {1087, 1273, 1276, 1279, 1282}
_SNOW_CODES = {
    1066, 1114, 1117, 1210, 1213, 1216, 1219, 1222, 1225, 1237,
    1255, 1258, 1261, 1264,
}


def condition_icon(code: int | None) -> str:
    """Map a WeatherAPI condition code to a weather emoji."""
    if code is None:
        return "\U0001f321\ufe0f"
    if code == 1000:
        return _SUN
    if code in _CLOUD_CODES:
        return _CLOUD
    if code in _FOG_CODES:
        return _FOG
    if code in _STORM_CODES:
        return _STORM
    if code in _SNOW_CODES:
        return _SNOW
    # Every remaining code in the 1063-1264 range is a rain, drizzle or sleet variant
    return _RAIN
