"""Location autocomplete suggestions for the search box.

Uses a two-tier approach:
1. Google Places Autocomplete web service (when GOOGLE_MAPS_API_KEY is set)
2. Nominatim via geopy (keyless fallback)

Text starting with "@" is a question for the assistant, not a place,
and never triggers a lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

from weatherdash import config

logger = logging.getLogger(__name__)

LLM_PREFIX = "@"
MAX_FALLBACK_RESULTS = 5


class PlacesError(Exception):
    """Raised when the places service rejects an autocomplete request."""


@dataclass(frozen=True)
class PlaceSuggestion:
    """A candidate place for partial text input.

    Attributes:
        place_id: Provider identifier.
        description: Full one-line description.
        main_text: Primary name (e.g., "Paris").
        secondary_text: Qualifier (e.g., "France").
    """

    place_id: str
    description: str
    main_text: str
    secondary_text: str = ""

    def as_location(self) -> str:
        """The location string handed to the weather lookup."""
        if self.secondary_text:
            return f"{self.main_text}, {self.secondary_text}"
        return self.main_text


def is_llm_query(text: str) -> bool:
    """Whether the input is an assistant question ("@..." convention)."""
    return (text or "").strip().startswith(LLM_PREFIX)


def _autocomplete_google(text: str, api_key: str) -> list[PlaceSuggestion]:
    """Query the Google Places Autocomplete web service.

    Raises:
        PlacesError: On transport errors or a status other than OK/ZERO_RESULTS.
    """
    try:
        response = httpx.get(
            f"{config.PLACES_API_BASE_URL}/autocomplete/json",
            params={"input": text, "key": api_key},
            timeout=config.PLACES_REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise PlacesError(f"HTTP error communicating with the places service: {exc}")

    if response.status_code != 200:
        raise PlacesError(f"Places service error (HTTP {response.status_code}).")

    try:
        data = response.json()
    except ValueError:
        raise PlacesError("Received invalid JSON from the places service.")

    status = data.get("status", "")
    if status == "ZERO_RESULTS":
        return []
    if status != "OK":
        raise PlacesError(
            data.get("error_message") or f"Places autocomplete failed with status {status}."
        )

    suggestions = []
    for p in data.get("predictions", []):
        structured = p.get("structured_formatting") or {}
        description = p.get("description", "")
        suggestions.append(
            PlaceSuggestion(
                place_id=p.get("place_id", ""),
                description=description,
                main_text=structured.get("main_text", description),
                secondary_text=structured.get("secondary_text", ""),
            )
        )
    return suggestions


def _autocomplete_nominatim(text: str) -> list[PlaceSuggestion]:
    """Suggest places with Nominatim. Returns [] on geocoder failure."""
    try:
        geolocator = Nominatim(
            user_agent=config.NOMINATIM_USER_AGENT,
            timeout=config.NOMINATIM_TIMEOUT,
        )
        results = geolocator.geocode(text, exactly_one=False, limit=MAX_FALLBACK_RESULTS)
    except (GeocoderTimedOut, GeocoderServiceError) as exc:
        logger.warning("Nominatim lookup failed for %r: %s", text, exc)
        return []

    suggestions = []
    for result in results or []:
        main, _, secondary = result.address.partition(", ")
        raw = getattr(result, "raw", None) or {}
        suggestions.append(
            PlaceSuggestion(
                place_id=str(raw.get("place_id", "")),
                description=result.address,
                main_text=main,
                secondary_text=secondary,
            )
        )
    return suggestions


def autocomplete(text: str) -> list[PlaceSuggestion]:
    """Return ranked place suggestions for partial input.

    Args:
        text: What the user has typed so far.

    Returns:
        Suggestions in provider order; empty for blank or "@" input.

    Raises:
        PlacesError: If the Google service rejects the request.
    """
    text = (text or "").strip()
    if not text or is_llm_query(text):
        return []

    api_key = config.get_google_maps_api_key()
    if api_key:
        suggestions = _autocomplete_google(text, api_key)
    else:
        suggestions = _autocomplete_nominatim(text)

    logger.debug("Autocomplete %r -> %d suggestions", text, len(suggestions))
    return suggestions
