"""
One-time authorization-code flow used to obtain the refresh token the
session runs on. Not needed once SPOTIFY_REFRESH_TOKEN is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urlparse

from lyric_sync.auth.tokens import TOKEN_URL
from lyric_sync.errors import AuthError, ConfigError, TransportError
from lyric_sync.net.transport import HttpTransport

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
DEFAULT_SCOPES = ("user-read-currently-playing", "user-read-playback-state")


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


def build_authorize_url(
    client_id: str,
    redirect_uri: str = "http://example.com",
    scopes: tuple[str, ...] = DEFAULT_SCOPES,
) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def extract_code(value: str) -> str:
    """Accept a bare code, `code=XYZ`, or the whole redirected URL."""
    value = value.strip()
    if "=" not in value:
        return value
    query = parse_qs(urlparse(value).query if "?" in value else value)
    if query.get("code"):
        return query["code"][0]
    if query.get("error"):
        raise AuthError(None, f"authorization denied: {query['error'][0]}")
    return value.split("=", 1)[1].split("&", 1)[0]


def exchange_code(
    transport: HttpTransport,
    *,
    client_id: str,
    client_secret: str | None,
    code: str,
    redirect_uri: str = "http://example.com",
) -> TokenPair:
    if not client_secret:
        raise ConfigError("No client secret provided")

    params = {
        "grant_type": "authorization_code",
        "code": extract_code(code),
        "redirect_uri": redirect_uri,
        "client_id": client_id,
        "client_secret": client_secret,
    }
    try:
        data = transport.post(TOKEN_URL, params)
    except TransportError as e:
        raise AuthError(e.status, f"authorization code exchange failed: {e.cause}") from e

    access, refresh = data.get("access_token"), data.get("refresh_token")
    if not access or not refresh:
        raise AuthError(None, "token response is missing access_token or refresh_token")
    return TokenPair(access_token=str(access), refresh_token=str(refresh))
