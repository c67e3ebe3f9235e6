"""Email/password authentication against Supabase Auth (GoTrue).

The hosted service owns identities and sessions; this module only shapes
requests to /auth/v1 and turns responses into a Session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from weatherdash import config

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when sign-in, sign-up, or session lookup fails."""


@dataclass(frozen=True)
class Session:
    """A signed-in user's session.

    Attributes:
        access_token: JWT sent as the bearer token to Supabase.
        refresh_token: Token used to obtain a new access token.
        user_id: Supabase user UUID.
        email: The user's email address.
    """

    access_token: str
    refresh_token: str
    user_id: str
    email: str = ""


def _create_client(access_token: str | None = None) -> httpx.Client:
    """Create an httpx client for the Supabase Auth API."""
    url = config.get_supabase_url()
    anon_key = config.get_supabase_anon_key()
    if not url or not anon_key:
        raise AuthError(
            "SUPABASE_URL and SUPABASE_ANON_KEY must be set to sign in."
        )
    headers = {"apikey": anon_key, "Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return httpx.Client(
        base_url=f"{url}/auth/v1",
        headers=headers,
        timeout=config.SUPABASE_REQUEST_TIMEOUT,
    )


def _send(client: httpx.Client, method: str, path: str, **kwargs) -> httpx.Response:
    try:
        return client.request(method, path, **kwargs)
    except httpx.TimeoutException:
        raise AuthError("Request to the auth service timed out. Please try again.")
    except httpx.HTTPError as exc:
        raise AuthError(f"HTTP error communicating with the auth service: {exc}")


def _json(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        raise AuthError("Unexpected response format from the auth service.")


def _session_from_payload(data: dict) -> Session:
    try:
        user = data["user"]
        return Session(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            user_id=user["id"],
            email=user.get("email", ""),
        )
    except (KeyError, TypeError):
        raise AuthError("Unexpected response format from the auth service.")


def sign_in(email: str, password: str) -> Session:
    """Sign in with email and password.

    Raises:
        AuthError: On bad credentials or communication errors.
    """
    client = _create_client()
    try:
        response = _send(
            client,
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
    finally:
        client.close()

    if response.status_code != 200:
        logger.info("Sign-in rejected for %s (HTTP %s)", email, response.status_code)
        raise AuthError("Invalid email or password")
    return _session_from_payload(_json(response))


def sign_up(email: str, password: str) -> Session | None:
    """Create an account.

    Returns:
        A Session when the project auto-confirms new users, or None when
        the user must confirm their email before signing in.

    Raises:
        AuthError: If the service rejects the sign-up.
    """
    client = _create_client()
    try:
        response = _send(
            client, "POST", "/signup", json={"email": email, "password": password}
        )
    finally:
        client.close()

    if response.status_code not in (200, 201):
        logger.info("Sign-up rejected for %s (HTTP %s)", email, response.status_code)
        raise AuthError("Invalid email or password")

    data = _json(response)
    if isinstance(data, dict) and "access_token" in data:
        return _session_from_payload(data)
    return None


def refresh_session(session: Session) -> Session:
    """Exchange the refresh token for a new session."""
    client = _create_client()
    try:
        response = _send(
            client,
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": session.refresh_token},
        )
    finally:
        client.close()

    if response.status_code != 200:
        raise AuthError("Your session has expired. Please sign in again.")
    return _session_from_payload(_json(response))


def get_user(access_token: str) -> dict:
    """Return the user record for an access token.

    Raises:
        AuthError: If the token is missing, invalid, or expired.
    """
    if not access_token:
        raise AuthError("Please sign in to use this feature")

    client = _create_client(access_token)
    try:
        response = _send(client, "GET", "/user")
    finally:
        client.close()

    if response.status_code != 200:
        raise AuthError("Please sign in to use this feature")
    return _json(response)


def ensure_session(session: Session) -> Session:
    """Return a session the auth service accepts, refreshing an expired one.

    Raises:
        AuthError: If the token was rejected and the refresh failed too.
    """
    try:
        get_user(session.access_token)
    except AuthError:
        logger.info("Access token rejected for user %s, refreshing", session.user_id)
        return refresh_session(session)
    return session


def sign_out(session: Session) -> None:
    """Revoke the session. A failure here is logged, not raised."""
    try:
        client = _create_client(session.access_token)
    except AuthError as exc:
        logger.warning("Sign-out skipped: %s", exc)
        return
    try:
        response = _send(client, "POST", "/logout")
        if response.status_code not in (200, 204):
            logger.warning("Sign-out returned HTTP %s", response.status_code)
    except AuthError as exc:
        logger.warning("Sign-out failed: %s", exc)
    finally:
        client.close()
