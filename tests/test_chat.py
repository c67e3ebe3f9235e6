"""Tests for the weather Q&A relay."""

from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from weatherdash.auth import AuthError
from weatherdash.chat import (
    RelayResponse,
    _build_forecast_context,
    ask_weather_question,
    build_weather_prompt,
    relay_weather_question,
)
from weatherdash.settings import SettingsError, UserSettings
from weatherdash.weather_client import WeatherReport


def _completion(text):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=text))]
    return response


def _status_error(cls, status, body):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return cls(
        f"Error code: {status}",
        response=httpx.Response(status, request=request),
        body=body,
    )


@pytest.fixture()
def signed_in():
    """Patch session validation and settings lookup for a user with a key."""
    with patch("weatherdash.chat.get_user", return_value={"id": "user-1"}), patch(
        "weatherdash.chat.load_settings",
        return_value=UserSettings(user_id="user-1", openai_api_key="sk-test"),
    ) as mock_load:
        yield mock_load


class TestBuildPrompt:
    def test_includes_current_conditions(self, sample_report):
        prompt = build_weather_prompt("Do I need a coat?", "London, UK", sample_report)

        assert "Current weather in London, UK (Local time: 2:30 PM on Tuesday)" in prompt
        assert "- Temperature: 46°F (Feels like 41°F)" in prompt
        assert "- Condition: Partly cloudy" in prompt
        assert "- Humidity: 76%" in prompt
        assert "- Wind: 9.4 mph" in prompt
        assert "- Chance of rain: 20%" in prompt
        assert "- High/Low: 48°F/40°F" in prompt
        assert "- Sunrise: 08:05 AM" in prompt
        assert "User asks: Do I need a coat?" in prompt
        assert "concise (1-3 sentences)" in prompt

    def test_includes_following_days(self, sample_report):
        prompt = build_weather_prompt("Rain tomorrow?", "London", sample_report)

        assert "1-Day Forecast:" in prompt
        assert "Wed, Jan 7:" in prompt
        assert "  - Condition: Moderate rain" in prompt
        assert "  - Chance of rain: 85%" in prompt

    def test_incomplete_weather_leaves_context_empty(self, sample_report):
        no_forecast = WeatherReport(
            location=sample_report.location, current=sample_report.current
        )
        prompt = build_weather_prompt("Hi?", "London", no_forecast)

        assert "Current weather" not in prompt
        assert "User asks: Hi?" in prompt

    def test_single_day_omits_forecast_section(self, sample_report):
        today_only = WeatherReport(
            location=sample_report.location,
            current=sample_report.current,
            forecast_days=sample_report.forecast_days[:1],
        )
        prompt = build_weather_prompt("Hot today?", "London", today_only)

        assert "- Sunset: 04:06 PM" in prompt
        assert "Day Forecast:" not in prompt

    def test_forecast_context_capped(self, sample_report):
        many = WeatherReport(
            location=sample_report.location,
            current=sample_report.current,
            forecast_days=[sample_report.forecast_days[1]] * 10,
        )
        text = _build_forecast_context(many)
        assert text.count("High/Low") == 6


class TestRelay:
    def test_signed_out(self, sample_report):
        result = relay_weather_question("rain?", "London", sample_report, None)
        assert result == RelayResponse(status=401, error="Please sign in to use this feature")

    @patch("weatherdash.chat.get_user", side_effect=AuthError("expired"))
    def test_expired_session(self, _mock_user, sample_report, session):
        result = relay_weather_question("rain?", "London", sample_report, session)
        assert result.status == 401

    @patch("weatherdash.chat.load_settings", side_effect=SettingsError("boom"))
    @patch("weatherdash.chat.get_user", return_value={"id": "user-1"})
    def test_settings_failure(self, _mock_user, _mock_load, sample_report, session):
        result = relay_weather_question("rain?", "London", sample_report, session)
        assert result == RelayResponse(status=500, error="Error fetching user settings")

    def test_missing_api_key(self, signed_in, sample_report, session):
        signed_in.return_value = UserSettings(user_id="user-1")

        result = relay_weather_question("rain?", "London", sample_report, session)

        assert result == RelayResponse(
            status=400, error="Please add your OpenAI API key in settings"
        )

    @patch("weatherdash.chat.openai.OpenAI")
    def test_success(self, mock_openai_cls, signed_in, sample_report, session):
        mock_client = MagicMock()
        mock_openai_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = _completion("Yes, rain tomorrow.")

        result = relay_weather_question("rain tomorrow?", "London", sample_report, session)

        assert result.ok
        assert result.content == "Yes, rain tomorrow."
        mock_openai_cls.assert_called_once_with(
            api_key="sk-test", base_url="https://api.openai.com/v1"
        )
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo"
        assert kwargs["max_tokens"] == 150
        assert kwargs["temperature"] == 0.7
        assert kwargs["messages"][0]["role"] == "user"
        assert "User asks: rain tomorrow?" in kwargs["messages"][0]["content"]

    @patch("weatherdash.chat.openai.OpenAI")
    def test_invalid_key(self, mock_openai_cls, signed_in, sample_report, session):
        mock_openai_cls.return_value.chat.completions.create.side_effect = _status_error(
            openai.AuthenticationError, 401, {"message": "Incorrect API key provided"}
        )

        result = relay_weather_question("rain?", "London", sample_report, session)

        assert result == RelayResponse(
            status=401,
            error="Invalid OpenAI API key. Please check your API key in settings",
        )

    @patch("weatherdash.chat.openai.OpenAI")
    def test_upstream_error_message_passed_through(
        self, mock_openai_cls, signed_in, sample_report, session
    ):
        mock_openai_cls.return_value.chat.completions.create.side_effect = _status_error(
            openai.RateLimitError,
            429,
            {"message": "Rate limit reached for gpt-3.5-turbo", "type": "requests"},
        )

        result = relay_weather_question("rain?", "London", sample_report, session)

        assert result.status == 429
        assert result.error == "Rate limit reached for gpt-3.5-turbo"

    @patch("weatherdash.chat.openai.OpenAI")
    def test_upstream_error_without_message(
        self, mock_openai_cls, signed_in, sample_report, session
    ):
        mock_openai_cls.return_value.chat.completions.create.side_effect = _status_error(
            openai.InternalServerError, 500, None
        )

        result = relay_weather_question("rain?", "London", sample_report, session)

        assert result == RelayResponse(status=500, error="Error connecting to OpenAI")

    @patch("weatherdash.chat.openai.OpenAI")
    def test_connection_error(self, mock_openai_cls, signed_in, sample_report, session):
        mock_openai_cls.return_value.chat.completions.create.side_effect = (
            openai.APIConnectionError(request=MagicMock())
        )

        result = relay_weather_question("rain?", "London", sample_report, session)

        assert result.status == 502
        assert result.error == "Error connecting to OpenAI"

    @patch("weatherdash.chat.openai.OpenAI")
    def test_empty_completion(self, mock_openai_cls, signed_in, sample_report, session):
        mock_openai_cls.return_value.chat.completions.create.return_value = _completion(None)

        result = relay_weather_question("rain?", "London", sample_report, session)

        assert result == RelayResponse(status=500, error="Received an invalid response")


class TestAskWeatherQuestion:
    @patch("weatherdash.chat.relay_weather_question")
    def test_returns_content(self, mock_relay, sample_report, session):
        mock_relay.return_value = RelayResponse(status=200, content="Sunny all day.")
        assert ask_weather_question("sun?", "London", sample_report, session) == "Sunny all day."

    @patch("weatherdash.chat.relay_weather_question")
    def test_returns_error_verbatim(self, mock_relay, sample_report, session):
        mock_relay.return_value = RelayResponse(
            status=429, error="Rate limit reached for gpt-3.5-turbo"
        )
        assert (
            ask_weather_question("sun?", "London", sample_report, session)
            == "Rate limit reached for gpt-3.5-turbo"
        )

    @patch("weatherdash.chat.relay_weather_question", side_effect=RuntimeError("bug"))
    def test_unexpected_failure(self, _mock_relay, sample_report, session):
        assert (
            ask_weather_question("sun?", "London", sample_report, session)
            == "An unexpected error occurred. Please try again."
        )
