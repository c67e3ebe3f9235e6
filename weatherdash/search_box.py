"""State behind the combined location search / assistant input.

Plain text searches for a place (with debounced autocomplete). Text
starting with "@" is a question for the assistant about the weather at
the current location. The class holds no Streamlit calls so the UI can
keep one instance in session state and drive it from callbacks.
"""

from __future__ import annotations

import logging
from typing import Callable

from weatherdash.debounce import Debouncer
from weatherdash.places import LLM_PREFIX, PlaceSuggestion, PlacesError, is_llm_query
from weatherdash.weather_client import WeatherAPIError, WeatherReport

logger = logging.getLogger(__name__)

LLM_FAILURE_MESSAGE = "Error processing your request. Please try again."


class SearchBox:
    """Search/ask input state.

    Args:
        on_location: Called with a location string when the user picks one.
        fetch_weather: Returns the WeatherReport for a location.
        ask: Answers ``(question, location, report)`` with display text.
        suggest: Returns autocomplete suggestions for partial text.
        debouncer: Gates ``suggest`` calls to one per idle period.
    """

    def __init__(
        self,
        on_location: Callable[[str], None],
        fetch_weather: Callable[[str], WeatherReport],
        ask: Callable[[str, str, WeatherReport], str],
        suggest: Callable[[str], list[PlaceSuggestion]],
        debouncer: Debouncer[str],
    ):
        self._on_location = on_location
        self._fetch_weather = fetch_weather
        self._ask = ask
        self._suggest = suggest
        self._debouncer = debouncer

        self.text = ""
        self.expanded = False
        self.suggestions: list[PlaceSuggestion] = []
        self.llm_response: str | None = None
        self.llm_visible = False
        self.llm_loading = False
        self.current_location = ""
        self.current_weather: WeatherReport | None = None

    def set_current_location(self, location: str) -> None:
        """Track the displayed location and load the weather questions refer to."""
        self.current_location = location
        if not location:
            self.current_weather = None
            return
        try:
            self.current_weather = self._fetch_weather(location)
        except WeatherAPIError as exc:
            logger.warning("Weather for assistant context unavailable (%s): %s", location, exc)
            self.current_weather = None

    def expand(self) -> None:
        self.expanded = True

    def collapse(self) -> None:
        """Close the input along with its suggestions and any answer."""
        self.expanded = False
        self.suggestions = []
        self.llm_visible = False
        self._debouncer.cancel()

    def type(self, text: str) -> None:
        """Handle a change to the input text."""
        self.text = text
        if not text.strip() or is_llm_query(text):
            self.suggestions = []
            self._debouncer.cancel()
            return
        self._debouncer.submit(text.strip())

    def poll(self) -> bool:
        """Fetch suggestions if the input has been idle long enough.

        Returns:
            True when the suggestion list was refreshed.
        """
        pending = self._debouncer.ready()
        if pending is None:
            return False
        try:
            self.suggestions = list(self._suggest(pending))
        except PlacesError as exc:
            logger.error("Error fetching suggestions for %r: %s", pending, exc)
            self.suggestions = []
        return True

    def submit(self) -> None:
        """Handle Enter: ask the assistant for "@" text, otherwise search."""
        text = self.text.strip()
        if text.startswith(LLM_PREFIX):
            self._submit_question(text[len(LLM_PREFIX):].strip())
            return
        if text:
            self._on_location(text)
            self.text = ""
            self.expanded = False
            self.suggestions = []
            self._debouncer.cancel()

    def _submit_question(self, question: str) -> None:
        if self.current_weather is None:
            self.llm_response = LLM_FAILURE_MESSAGE
        else:
            self.llm_loading = True
            try:
                self.llm_response = self._ask(
                    question, self.current_location, self.current_weather
                )
            finally:
                self.llm_loading = False
        self.llm_visible = True

    def select(self, suggestion: PlaceSuggestion) -> None:
        """Handle a click on an autocomplete suggestion."""
        location = suggestion.as_location()
        self.text = location
        self._on_location(location)
        self.expanded = False
        self.suggestions = []
        self._debouncer.cancel()

    def close_answer(self) -> None:
        self.llm_visible = False
