"""Streamlit weather dashboard.

Run with: streamlit run weatherdash/app.py

Search any location or type "@" followed by a
question to ask the assistant about the weather on screen. Signed-in
users can save favorite locations, pick a default, and store their
OpenAI API key.
"""

from __future__ import annotations

import html
import logging

import streamlit as st

from weatherdash import config
from weatherdash.auth import AuthError, Session, ensure_session, sign_in, sign_out, sign_up
from weatherdash.chat import ask_weather_question
from weatherdash.debounce import Debouncer
from weatherdash.formatting import (
    condition_icon,
    format_date,
    format_temperature,
    kph_to_mph,
    weather_icon_url,
)
from weatherdash.places import PlaceSuggestion, autocomplete
from weatherdash.search_box import SearchBox
from weatherdash.settings import (
    SettingsError,
    UserSettings,
    load_settings,
    resolve_start_location,
    save_settings,
)
from weatherdash.weather_client import ForecastDay, WeatherAPIError, WeatherReport, get_weather

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dynamic gradient backgrounds
# ---------------------------------------------------------------------------

_WEATHER_GRADIENTS: dict[str, str] = {
    "clear_day": "linear-gradient(180deg, #1e88e5 0%, #42a5f5 40%, #64b5f6 100%)",
    "clear_night": "linear-gradient(180deg, #0d1b2a 0%, #1b2838 50%, #1a2744 100%)",
    "cloudy_day": "linear-gradient(180deg, #546e7a 0%, #78909c 50%, #90a4ae 100%)",
    "cloudy_night": "linear-gradient(180deg, #263238 0%, #37474f 50%, #455a64 100%)",
    "rain": "linear-gradient(180deg, #37474f 0%, #455a64 50%, #546e7a 100%)",
    "snow": "linear-gradient(180deg, #546e7a 0%, #78909c 50%, #90a4ae 100%)",
    "storm": "linear-gradient(180deg, #1a1a2e 0%, #2d2d44 50%, #1a1a2e 100%)",
    "fog": "linear-gradient(180deg, #607d8b 0%, #78909c 50%, #90a4ae 100%)",
    "default": "linear-gradient(180deg, #1a1a2e 0%, #16213e 50%, #0f3460 100%)",
}


def _get_gradient(condition_text: str, is_day: bool) -> str:
    """Choose a background gradient based on the current condition and time."""
    lower = condition_text.lower()
    if "thunder" in lower:
        return _WEATHER_GRADIENTS["storm"]
    if any(w in lower for w in ("rain", "shower", "drizzle")):
        return _WEATHER_GRADIENTS["rain"]
    if any(w in lower for w in ("snow", "blizzard", "sleet", "ice", "freezing")):
        return _WEATHER_GRADIENTS["snow"]
    if any(w in lower for w in ("fog", "haze", "mist")):
        return _WEATHER_GRADIENTS["fog"]
    if any(w in lower for w in ("cloudy", "overcast")):
        return _WEATHER_GRADIENTS["cloudy_day" if is_day else "cloudy_night"]
    if any(w in lower for w in ("sunny", "clear")):
        return _WEATHER_GRADIENTS["clear_day" if is_day else "clear_night"]
    return _WEATHER_GRADIENTS["default"]


def _temp_to_color(temp_f: float) -> str:
    """Map a temperature (F) to a CSS color for the forecast bars."""
    if temp_f <= 10:
        return "#4a148c"
    if temp_f <= 32:
        return "#5c6bc0"
    if temp_f <= 50:
        return "#42a5f5"
    if temp_f <= 65:
        return "#26c6da"
    if temp_f <= 75:
        return "#66bb6a"
    if temp_f <= 85:
        return "#ffca28"
    if temp_f <= 95:
        return "#ff7043"
    return "#ef5350"


def _compute_temp_bars(days: list[ForecastDay]) -> list[dict]:
    """Position each day's low-high bar relative to the range across all days."""
    if not days:
        return []
    global_min = min(d.mintemp_f for d in days)
    global_max = max(d.maxtemp_f for d in days)
    spread = max(global_max - global_min, 1)

    bars = []
    for d in days:
        bars.append({
            "left_pct": ((d.mintemp_f - global_min) / spread) * 100,
            "width_pct": max(((d.maxtemp_f - d.mintemp_f) / spread) * 100, 3),
            "color_lo": _temp_to_color(d.mintemp_f),
            "color_hi": _temp_to_color(d.maxtemp_f),
        })
    return bars


# ---------------------------------------------------------------------------
# CSS injection
# ---------------------------------------------------------------------------

def _inject_css(gradient: str) -> None:
    """Inject glassmorphism card styles and the condition-dependent background."""
    st.markdown(f"""
    <style>
    .stApp {{
        background: {gradient} !important;
    }}
    #MainMenu {{visibility: hidden;}}
    footer {{visibility: hidden;}}
    .block-container {{
        padding-top: 1rem !important;
        max-width: 760px !important;
    }}
    .glass-card {{
        background: rgba(255, 255, 255, 0.08);
        backdrop-filter: blur(20px);
        border-radius: 16px;
        border: 1px solid rgba(255, 255, 255, 0.12);
        padding: 16px;
        margin-bottom: 14px;
        color: #ffffff;
    }}
    .section-label {{
        font-size: 0.75rem;
        text-transform: uppercase;
        letter-spacing: 0.5px;
        color: rgba(255, 255, 255, 0.55);
        margin-bottom: 10px;
        font-weight: 600;
    }}
    .wx-header {{ text-align: center; padding: 10px 0 16px 0; color: #ffffff; }}
    .wx-location {{ font-size: 1.4rem; font-weight: 500; }}
    .wx-temp {{ font-size: 5rem; font-weight: 200; line-height: 1.05; }}
    .wx-condition {{ font-size: 1.1rem; color: rgba(255, 255, 255, 0.8); }}
    .wx-hilo {{ font-size: 1rem; color: rgba(255, 255, 255, 0.7); }}
    .daily-row {{
        display: flex;
        align-items: center;
        padding: 10px 0;
        border-bottom: 1px solid rgba(255, 255, 255, 0.08);
    }}
    .daily-row:last-child {{ border-bottom: none; }}
    .d-name {{ flex: 0 0 110px; font-weight: 600; font-size: 0.9rem; }}
    .d-icon {{ flex: 0 0 35px; font-size: 1.2rem; text-align: center; }}
    .d-rain {{ flex: 0 0 45px; font-size: 0.75rem; color: #64b5f6; text-align: center; }}
    .d-lo {{ flex: 0 0 45px; text-align: right; font-size: 0.85rem; color: rgba(255,255,255,0.5); }}
    .d-bar-track {{
        flex: 1;
        height: 5px;
        border-radius: 3px;
        background: rgba(255, 255, 255, 0.12);
        margin: 0 8px;
        position: relative;
        overflow: hidden;
    }}
    .d-bar-fill {{ position: absolute; top: 0; height: 100%; border-radius: 3px; }}
    .d-hi {{ flex: 0 0 45px; font-size: 0.9rem; font-weight: 600; }}
    .detail-card {{
        background: rgba(255, 255, 255, 0.08);
        border-radius: 16px;
        border: 1px solid rgba(255, 255, 255, 0.12);
        padding: 14px;
        min-height: 96px;
        color: #ffffff;
    }}
    .detail-label {{
        font-size: 0.7rem;
        text-transform: uppercase;
        color: rgba(255, 255, 255, 0.5);
        margin-bottom: 8px;
        font-weight: 600;
    }}
    .detail-value {{ font-size: 1.6rem; }}
    .llm-answer {{
        background: rgba(255, 255, 255, 0.1);
        border-radius: 16px 16px 16px 4px;
        padding: 12px 16px;
        color: rgba(255,255,255,0.9);
    }}
    .stMarkdown, .stMarkdown p {{ color: #ffffff !important; }}
    </style>
    """, unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Cached data-fetching helpers
# ---------------------------------------------------------------------------

@st.cache_data(ttl=600, show_spinner=False)
def _cached_weather(location: str) -> WeatherReport:
    """Fetch weather for a location (cached for 10 minutes)."""
    return get_weather(location)


@st.cache_data(ttl=3600, show_spinner=False)
def _cached_autocomplete(text: str) -> list[PlaceSuggestion]:
    """Autocomplete suggestions (cached for 1 hour)."""
    return autocomplete(text)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

def _init_state() -> None:
    """Initialize session state keys if not present."""
    if "auth_session" not in st.session_state:
        st.session_state.auth_session = None
    if "user_settings" not in st.session_state:
        st.session_state.user_settings = None
    if "location" not in st.session_state:
        st.session_state.location = ""
    if "search_box" not in st.session_state:
        st.session_state.search_box = SearchBox(
            on_location=_set_location,
            fetch_weather=_cached_weather,
            ask=_ask,
            suggest=_cached_autocomplete,
            debouncer=Debouncer(config.AUTOCOMPLETE_DEBOUNCE_SECONDS),
        )


def _set_location(location: str) -> None:
    st.session_state.location = location


def _clear_session() -> None:
    st.session_state.auth_session = None
    st.session_state.user_settings = None
    st.session_state.pop("api_key_input", None)


def _active_session() -> Session | None:
    """The signed-in session, refreshed if its access token has expired.

    A session that can no longer be refreshed signs the user out.
    """
    session: Session | None = st.session_state.auth_session
    if session is None:
        return None
    try:
        session = ensure_session(session)
    except AuthError as exc:
        logger.warning("Session for user %s could not be refreshed: %s", session.user_id, exc)
        _clear_session()
        st.session_state.auth_notice = "Your session has expired. Please sign in again."
        return None
    st.session_state.auth_session = session
    return session


def _ask(question: str, location: str, report: WeatherReport) -> str:
    with st.spinner("Asking the assistant..."):
        return ask_weather_question(question, location, report, _active_session())


def _persist(settings: UserSettings) -> None:
    """Save settings for the signed-in user and keep the local copy in sync."""
    session = _active_session()
    if session is None:
        return
    try:
        save_settings(session, settings)
    except SettingsError as exc:
        st.session_state.settings_error = str(exc)
        return
    st.session_state.user_settings = settings
    st.session_state.settings_error = None


def _start_session(session: Session) -> None:
    st.session_state.auth_session = session
    try:
        settings = load_settings(session)
    except SettingsError as exc:
        logger.error("Could not load settings after sign-in: %s", exc)
        settings = UserSettings(user_id=session.user_id)
        st.session_state.settings_error = str(exc)
    st.session_state.user_settings = settings
    # Let the saved default take over from whatever was shown before sign-in
    if settings.default_location is not None:
        st.session_state.location = settings.default_location.address


# ---------------------------------------------------------------------------
# Sidebar: account
# ---------------------------------------------------------------------------

def _render_sign_in() -> None:
    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Sign up"])
    with sign_in_tab:
        with st.form("sign_in_form"):
            email = st.text_input("Email", key="sign_in_email")
            password = st.text_input("Password", type="password", key="sign_in_password")
            if st.form_submit_button("Sign in", use_container_width=True):
                try:
                    session = sign_in(email.strip(), password)
                except AuthError as exc:
                    st.error(str(exc))
                else:
                    _start_session(session)
                    st.rerun()
    with sign_up_tab:
        with st.form("sign_up_form"):
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            if st.form_submit_button("Create account", use_container_width=True):
                try:
                    session = sign_up(email.strip(), password)
                except AuthError as exc:
                    st.error(str(exc))
                else:
                    if session is None:
                        st.info("Check your email to confirm your account, then sign in.")
                    else:
                        _start_session(session)
                        st.rerun()


def _on_sign_out() -> None:
    session = st.session_state.auth_session
    if session is not None:
        sign_out(session)
    _clear_session()


# ---------------------------------------------------------------------------
# Sidebar: settings panel
# ---------------------------------------------------------------------------

def _render_api_key(settings: UserSettings) -> None:
    if "api_key_input" not in st.session_state:
        st.session_state.api_key_input = settings.openai_api_key
    saved = st.session_state.api_key_input == settings.openai_api_key
    st.markdown(f"**OpenAI API Key** &nbsp; `{'Saved' if saved else 'Unsaved'}`")
    st.text_input(
        "OpenAI API Key",
        type="password",
        placeholder="Enter your OpenAI API key",
        key="api_key_input",
        label_visibility="collapsed",
    )
    if st.button("Save key", key="save_api_key_btn", use_container_width=True):
        _persist(settings.with_api_key(st.session_state.get("api_key_input", "")))
        st.rerun()


def _render_saved_locations(settings: UserSettings) -> None:
    st.markdown("**Saved Locations**")
    if not settings.locations:
        st.caption("No saved locations yet.")

    for loc in settings.locations:
        is_default = loc.id == settings.default_location_id
        col_default, col_name, col_remove = st.columns([1, 5, 1])
        if col_default.button(
            "\u2605" if is_default else "\u2606",
            key=f"default_{loc.id}",
            help="Load this location on start",
        ):
            _persist(settings.toggle_default(loc.id))
            st.rerun()
        if col_name.button(
            f"{loc.nickname}: {loc.address}",
            key=f"open_{loc.id}",
            use_container_width=True,
        ):
            _set_location(loc.address)
            st.rerun()
        if col_remove.button("\u2715", key=f"rm_{loc.id}"):
            _persist(settings.remove_location(loc.id))
            st.rerun()

    with st.form("add_location_form", clear_on_submit=True):
        nickname = st.text_input("Nickname", placeholder="e.g., Home")
        address = st.text_input("Address", placeholder="e.g., Denver, CO")
        if st.form_submit_button("Add Location", use_container_width=True):
            updated = settings.add_location(nickname, address)
            if updated is settings:
                st.warning("Both a nickname and an address are required.")
            else:
                _persist(updated)
                st.rerun()


def _render_sidebar() -> None:
    with st.sidebar:
        st.markdown("### \u2699\ufe0f Settings")
        session: Session | None = st.session_state.auth_session
        if session is None:
            if st.session_state.get("auth_notice"):
                st.warning(st.session_state.pop("auth_notice"))
            _render_sign_in()
            st.caption("Sign in to save locations and ask the assistant.")
            return

        st.caption(f"Signed in as {session.email}")
        st.button("Sign out", key="sign_out_btn", on_click=_on_sign_out, use_container_width=True)

        settings: UserSettings = st.session_state.user_settings
        if st.session_state.get("settings_error"):
            st.error(st.session_state.settings_error)
        st.markdown("---")
        _render_api_key(settings)
        st.markdown("---")
        _render_saved_locations(settings)


# ---------------------------------------------------------------------------
# Render: search / ask input
# ---------------------------------------------------------------------------

def _on_search_submit() -> None:
    """Enter or the arrow: ask the assistant for "@" text, otherwise search."""
    box: SearchBox = st.session_state.search_box
    box.type(st.session_state.get("search_text", ""))
    box.submit()
    st.session_state.search_text = box.text


def _render_search_box() -> None:
    box: SearchBox = st.session_state.search_box

    if not box.expanded:
        if st.button("\U0001f50d Search or ask", key="expand_search_btn", use_container_width=True):
            box.expand()
            st.rerun()
        return

    col_input, col_go, col_close = st.columns([8, 1, 1])
    col_input.text_input(
        "Search",
        key="search_text",
        placeholder="Search any location or '@' to ask AI",
        on_change=_on_search_submit,
        label_visibility="collapsed",
    )
    col_go.button("\u2192", key="search_go_btn", on_click=_on_search_submit)
    if col_close.button("\u2715", key="search_close_btn"):
        box.collapse()
        st.rerun()

    if box.llm_visible and box.llm_response:
        st.markdown(
            f'<div class="llm-answer">{html.escape(box.llm_response)}</div>',
            unsafe_allow_html=True,
        )
        if st.button("Close", key="close_llm_btn"):
            box.close_answer()
            st.rerun()


# ---------------------------------------------------------------------------
# Render: weather display
# ---------------------------------------------------------------------------

def _header_html(report: WeatherReport) -> str:
    """Markup for the centered current conditions. Upstream text is escaped."""
    current = report.current
    hilo = ""
    if report.today is not None:
        hilo = (
            f"H: {format_temperature(report.today.maxtemp_f, 'F')} &nbsp; "
            f"L: {format_temperature(report.today.mintemp_f, 'F')}"
        )
    icon = ""
    if current.condition_icon:
        icon = f'<img src="{html.escape(weather_icon_url(current.condition_icon))}" width="64"/>'

    return (
        f'<div class="wx-header">'
        f'<div class="wx-location">Weather for {html.escape(report.location.name)}</div>'
        f'{icon}'
        f'<div class="wx-temp">{format_temperature(current.temp_f, "F")}</div>'
        f'<div class="wx-condition">{html.escape(current.condition_text)}</div>'
        f'<div class="wx-hilo">{hilo}</div>'
        f'</div>'
    )


def _render_header(report: WeatherReport) -> None:
    st.markdown(_header_html(report), unsafe_allow_html=True)


def _render_detail_cards(report: WeatherReport) -> None:
    """Render feels-like, wind, humidity and UV in a 2-column grid."""
    current = report.current
    wind = f"{kph_to_mph(current.wind_kph)} mph {html.escape(current.wind_dir)}".strip()
    cards = [
        ("\U0001f321\ufe0f", "FEELS LIKE", format_temperature(current.feelslike_f, "F")),
        ("\U0001f32c\ufe0f", "WIND", wind),
        ("\U0001f4a7", "HUMIDITY", f"{current.humidity}%"),
        ("\u2600\ufe0f", "UV INDEX", f"{current.uv:g}"),
    ]
    for i in range(0, len(cards), 2):
        cols = st.columns(2)
        for col, (emoji, label, value) in zip(cols, cards[i:i + 2]):
            col.markdown(
                f'<div class="detail-card">'
                f'<div class="detail-label">{emoji} {label}</div>'
                f'<div class="detail-value">{value}</div>'
                f'</div>',
                unsafe_allow_html=True,
            )


def _render_forecast_cards(report: WeatherReport) -> None:
    """Render one row per forecast day with a low-high temperature bar."""
    if not report.forecast_days:
        return

    tz_id = report.location.tz_id or None
    bars = _compute_temp_bars(report.forecast_days)
    rows = ""
    for day, bar in zip(report.forecast_days, bars):
        rows += (
            f'<div class="daily-row">'
            f'<div class="d-name">{format_date(day.date, tz_id)}</div>'
            f'<div class="d-icon">{condition_icon(day.condition_code)}</div>'
            f'<div class="d-rain">{day.daily_chance_of_rain}%</div>'
            f'<div class="d-lo">{format_temperature(day.mintemp_f, "F")}</div>'
            f'<div class="d-bar-track">'
            f'<div class="d-bar-fill" style="left:{bar["left_pct"]:.1f}%;width:{bar["width_pct"]:.1f}%;'
            f'background:linear-gradient(90deg,{bar["color_lo"]},{bar["color_hi"]});">'
            f'</div></div>'
            f'<div class="d-hi">{format_temperature(day.maxtemp_f, "F")}</div>'
            f'</div>'
        )

    st.markdown(
        f'<div class="glass-card">'
        f'<div class="section-label">\U0001f4c5 {len(report.forecast_days)}-DAY FORECAST</div>'
        f'{rows}'
        f'</div>',
        unsafe_allow_html=True,
    )


def _render_weather(location: str) -> None:
    """Fetch and render the weather panel for a location."""
    with st.spinner("Fetching weather..."):
        try:
            report = _cached_weather(location)
        except WeatherAPIError as exc:
            _inject_css(_WEATHER_GRADIENTS["default"])
            st.error(str(exc))
            return

    _inject_css(_get_gradient(report.current.condition_text, report.current.is_day))
    _render_header(report)
    _render_detail_cards(report)
    _render_forecast_cards(report)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    """Main Streamlit application entry point."""
    config.configure_logging()
    st.set_page_config(
        page_title="Weather",
        page_icon="\U0001f326\ufe0f",
        layout="centered",
    )
    _init_state()
    _render_sidebar()

    location = resolve_start_location(
        st.session_state.location, st.session_state.user_settings
    )
    st.session_state.location = location

    box: SearchBox = st.session_state.search_box
    if box.current_location != location:
        box.set_current_location(location)

    _render_weather(location)
    _render_search_box()


if __name__ == "__main__":
    main()
