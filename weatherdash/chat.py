"""Natural-language weather Q&A relayed to an OpenAI-compatible API.

The relay assembles a prompt from the weather currently on screen and
forwards it with the signed-in user's own API key. It never raises:
every outcome is a RelayResponse carrying an HTTP-style status and
either the answer or a user-facing error message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import openai

from weatherdash import config
from weatherdash.auth import AuthError, Session, get_user
from weatherdash.formatting import (
    format_date,
    format_local_time,
    format_temperature,
    format_weekday,
)
from weatherdash.settings import SettingsError, load_settings
from weatherdash.weather_client import WeatherReport

logger = logging.getLogger(__name__)

FORECAST_CONTEXT_DAYS = 6


class ChatError(Exception):
    """Raised when the completion API call fails."""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class RelayResponse:
    """Outcome of a relayed question."""

    status: int
    content: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == 200 and self.content is not None


_PROMPT = """\
You are a helpful weather assistant with access to both current conditions and future forecast. Here is the weather information:

{weather_info}

User asks: {query}

Please provide a helpful, natural response based on both current weather conditions and the forecast. \
If the user's question relates to future weather, include relevant forecast information. \
Focus on answering the user's specific question while incorporating relevant weather data and time-specific context. \
Keep the response concise (1-3 sentences)."""


def _local_time_label(report: WeatherReport) -> str:
    loc = report.location
    try:
        time_str = format_local_time(loc.localtime, loc.tz_id or None)
        day_str = format_weekday(loc.localtime, loc.tz_id or None)
    except (ValueError, KeyError):
        return loc.localtime
    return f"{time_str} on {day_str}"


def _build_forecast_context(report: WeatherReport, max_days: int = FORECAST_CONTEXT_DAYS) -> str:
    """Format the days after today as readable text."""
    tz_id = report.location.tz_id or None
    blocks = []
    for day in report.forecast_days[1:1 + max_days]:
        blocks.append(
            f"{format_date(day.date, tz_id)}:\n"
            f"  - High/Low: {format_temperature(day.maxtemp_f, 'F')}/"
            f"{format_temperature(day.mintemp_f, 'F')}\n"
            f"  - Condition: {day.condition_text}\n"
            f"  - Chance of rain: {day.daily_chance_of_rain}%"
        )
    return "\n\n".join(blocks)


def _build_weather_info(location: str, report: WeatherReport | None) -> str:
    """Current conditions plus the outlook, or "" when the data is incomplete."""
    if report is None or report.today is None:
        return ""

    current = report.current
    today = report.today
    info = (
        f"Current weather in {location} (Local time: {_local_time_label(report)}):\n"
        f"- Temperature: {format_temperature(current.temp_f, 'F')} "
        f"(Feels like {format_temperature(current.feelslike_f, 'F')})\n"
        f"- Condition: {current.condition_text}\n"
        f"- Humidity: {current.humidity}%\n"
        f"- Wind: {current.wind_mph} mph\n"
        f"- Chance of rain: {today.daily_chance_of_rain}%\n"
        f"- High/Low: {format_temperature(today.maxtemp_f, 'F')}/"
        f"{format_temperature(today.mintemp_f, 'F')}\n"
        f"- Sunrise: {today.sunrise}\n"
        f"- Sunset: {today.sunset}"
    )

    future = _build_forecast_context(report)
    if not future:
        return info
    future_count = min(len(report.forecast_days) - 1, FORECAST_CONTEXT_DAYS)
    return f"{info}\n\n{future_count}-Day Forecast:\n{future}"


def build_weather_prompt(query: str, location: str, report: WeatherReport | None) -> str:
    """Assemble the single user message sent to the completion API."""
    return _PROMPT.format(
        weather_info=_build_weather_info(location, report),
        query=query,
    )


def _upstream_message(exc: openai.APIStatusError) -> str:
    body = exc.body
    if isinstance(body, dict):
        if isinstance(body.get("error"), dict):
            body = body["error"]
        message = body.get("message")
        if message:
            return str(message)
    return "Error connecting to OpenAI"


def _complete(prompt: str, api_key: str) -> str:
    """Send the prompt and return the completion text.

    Raises:
        ChatError: With the status to report back to the caller.
    """
    try:
        client = openai.OpenAI(api_key=api_key, base_url=config.OPENAI_BASE_URL)
        response = client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=config.CHAT_MAX_TOKENS,
            temperature=config.CHAT_TEMPERATURE,
        )
    except openai.AuthenticationError:
        raise ChatError(
            "Invalid OpenAI API key. Please check your API key in settings", status=401
        )
    except openai.APIStatusError as exc:
        logger.error("Completion API error (HTTP %s): %s", exc.status_code, exc.body)
        raise ChatError(_upstream_message(exc), status=exc.status_code)
    except openai.APIError as exc:
        logger.error("Completion API request failed: %s", exc)
        raise ChatError("Error connecting to OpenAI", status=502)

    try:
        content = response.choices[0].message.content
    except (IndexError, AttributeError, TypeError):
        content = None
    if not content:
        logger.error("Unexpected completion response format: %r", response)
        raise ChatError("Received an invalid response", status=500)
    return content


def relay_weather_question(
    query: str,
    location: str,
    report: WeatherReport | None,
    session: Session | None,
) -> RelayResponse:
    """Answer a question about the weather on behalf of the signed-in user.

    Args:
        query: The question, without the leading "@".
        location: Location string as the user entered or selected it.
        report: The weather currently displayed for that location.
        session: The user's session, or None when signed out.

    Returns:
        RelayResponse with status 200 and content, or an error status and message.
    """
    if session is None:
        return RelayResponse(status=401, error="Please sign in to use this feature")
    try:
        get_user(session.access_token)
    except AuthError:
        return RelayResponse(status=401, error="Please sign in to use this feature")

    try:
        settings = load_settings(session)
    except SettingsError as exc:
        logger.error("Error fetching settings: %s", exc)
        return RelayResponse(status=500, error="Error fetching user settings")

    if not settings.openai_api_key:
        return RelayResponse(status=400, error="Please add your OpenAI API key in settings")

    try:
        prompt = build_weather_prompt(query, location, report)
    except (ValueError, KeyError) as exc:
        logger.error("Could not format weather data for the prompt: %s", exc)
        return RelayResponse(status=500, error="An unexpected error occurred")

    try:
        content = _complete(prompt, settings.openai_api_key)
    except ChatError as exc:
        return RelayResponse(status=exc.status, error=str(exc))

    return RelayResponse(status=200, content=content)


def ask_weather_question(
    query: str,
    location: str,
    report: WeatherReport | None,
    session: Session | None,
) -> str:
    """Dispatch a question and return the text to show the user.

    On failure this is the relay's error message, unchanged.
    """
    try:
        result = relay_weather_question(query, location, report, session)
    except Exception:
        logger.exception("Unexpected error relaying weather question")
        return "An unexpected error occurred. Please try again."
    if result.ok:
        return result.content
    return result.error or "An error occurred while processing your request"
