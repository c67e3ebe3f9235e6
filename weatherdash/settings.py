"""Per-user settings: saved locations, default location, and OpenAI key.

Stored as one row per user in the Supabase ``user_settings`` table and
accessed through PostgREST (/rest/v1). Updates are whole-row upserts on
``user_id``, so the last write wins.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field, replace

import httpx

from weatherdash import config
from weatherdash.auth import Session
from weatherdash.weather_client import pick_fallback_location

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """Raised when settings cannot be loaded or saved."""


@dataclass(frozen=True)
class SavedLocation:
    """A favorite location with a user-chosen nickname."""

    id: str
    nickname: str
    address: str


@dataclass(frozen=True)
class UserSettings:
    """A user's settings record.

    Attributes:
        user_id: Owning Supabase user id.
        locations: Saved locations in the order they were added.
        default_location_id: Id of the location loaded on start, if any.
        openai_api_key: Key used for assistant questions ("" when unset).
    """

    user_id: str
    locations: tuple[SavedLocation, ...] = field(default_factory=tuple)
    default_location_id: str | None = None
    openai_api_key: str = ""

    @property
    def default_location(self) -> SavedLocation | None:
        """The saved location the default pointer refers to, if it still exists."""
        if self.default_location_id is None:
            return None
        for loc in self.locations:
            if loc.id == self.default_location_id:
                return loc
        return None

    def add_location(self, nickname: str, address: str) -> UserSettings:
        """Append a location. Both fields are required; blanks leave settings unchanged."""
        nickname = nickname.strip()
        address = address.strip()
        if not nickname or not address:
            return self
        new = SavedLocation(id=uuid.uuid4().hex, nickname=nickname, address=address)
        return replace(self, locations=self.locations + (new,))

    def remove_location(self, location_id: str) -> UserSettings:
        """Remove a location, clearing the default if it pointed there."""
        locations = tuple(loc for loc in self.locations if loc.id != location_id)
        default = self.default_location_id
        if default == location_id:
            default = None
        return replace(self, locations=locations, default_location_id=default)

    def toggle_default(self, location_id: str) -> UserSettings:
        """Make a location the default, or clear it if it already is."""
        if self.default_location_id == location_id:
            return replace(self, default_location_id=None)
        if not any(loc.id == location_id for loc in self.locations):
            return self
        return replace(self, default_location_id=location_id)

    def with_api_key(self, api_key: str) -> UserSettings:
        return replace(self, openai_api_key=api_key.strip())

    def to_row(self) -> dict:
        return {
            "user_id": self.user_id,
            "locations": [
                {"id": loc.id, "nickname": loc.nickname, "address": loc.address}
                for loc in self.locations
            ],
            "default_location": self.default_location_id,
            "openai_api_key": self.openai_api_key or None,
        }

    @classmethod
    def from_row(cls, row: dict) -> UserSettings:
        locations = tuple(
            SavedLocation(
                id=str(item.get("id", "")),
                nickname=item.get("nickname", ""),
                address=item.get("address", ""),
            )
            for item in (row.get("locations") or [])
        )
        return cls(
            user_id=row["user_id"],
            locations=locations,
            default_location_id=row.get("default_location"),
            openai_api_key=row.get("openai_api_key") or "",
        )


def resolve_start_location(
    query: str | None,
    settings: UserSettings | None,
    rng: random.Random | None = None,
) -> str:
    """Pick the location to show: explicit query, saved default, or a random city."""
    if query and query.strip():
        return query.strip()
    if settings is not None and settings.default_location is not None:
        return settings.default_location.address
    return pick_fallback_location(rng)


def _create_client(session: Session) -> httpx.Client:
    """Create an httpx client for PostgREST, authenticated as the session user."""
    url = config.get_supabase_url()
    anon_key = config.get_supabase_anon_key()
    if not url or not anon_key:
        raise SettingsError("SUPABASE_URL and SUPABASE_ANON_KEY must be set to save settings.")
    return httpx.Client(
        base_url=f"{url}/rest/v1",
        headers={
            "apikey": anon_key,
            "Authorization": f"Bearer {session.access_token}",
            "Content-Type": "application/json",
        },
        timeout=config.SUPABASE_REQUEST_TIMEOUT,
    )


def load_settings(session: Session) -> UserSettings:
    """Fetch the user's settings row, or an empty record if none exists.

    Raises:
        SettingsError: On communication errors or a malformed response.
    """
    client = _create_client(session)
    try:
        response = client.get(
            f"/{config.SETTINGS_TABLE}",
            params={"select": "*", "user_id": f"eq.{session.user_id}"},
        )
    except httpx.HTTPError as exc:
        raise SettingsError(f"Error fetching user settings: {exc}")
    finally:
        client.close()

    if response.status_code != 200:
        logger.error("Settings fetch returned HTTP %s: %s", response.status_code, response.text)
        raise SettingsError("Error fetching user settings")

    try:
        rows = response.json()
        if not rows:
            return UserSettings(user_id=session.user_id)
        return UserSettings.from_row(rows[0])
    except (ValueError, KeyError, TypeError, AttributeError):
        raise SettingsError("Error fetching user settings")


def save_settings(session: Session, settings: UserSettings) -> None:
    """Upsert the user's settings row (last write wins).

    Raises:
        SettingsError: On communication errors or a rejected write.
    """
    if settings.user_id != session.user_id:
        raise SettingsError("Settings belong to a different user.")

    client = _create_client(session)
    try:
        response = client.post(
            f"/{config.SETTINGS_TABLE}",
            params={"on_conflict": "user_id"},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            json=settings.to_row(),
        )
    except httpx.HTTPError as exc:
        raise SettingsError(f"Error saving user settings: {exc}")
    finally:
        client.close()

    if response.status_code not in (200, 201, 204):
        logger.error("Settings save returned HTTP %s: %s", response.status_code, response.text)
        raise SettingsError("Error saving user settings")
    logger.info("Saved settings for user %s", session.user_id)
