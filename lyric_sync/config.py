from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from lyric_sync.auth.tokens import Credentials
from lyric_sync.errors import ConfigError

_REQUIRED = {
    "client_id": "SPOTIFY_CLIENT_ID",
    "client_secret": "SPOTIFY_CLIENT_SECRET",
    "refresh_token": "SPOTIFY_REFRESH_TOKEN",
    "cookie": "SPOTIFY_COOKIE",
}


@dataclass(frozen=True)
class AppConfig:
    # Credentials
    client_id: str
    client_secret: str
    refresh_token: str
    cookie: str
    access_token: str | None
    redirect_uri: str

    # Timing
    token_ttl_s: float
    idle_poll_ms: int
    poll_max_attempts: int
    poll_backoff_step_ms: int
    missing_lyrics_retries: int
    http_timeout_s: float

    # Rendering
    context_lines: int  # upcoming lines shown under the current one
    use_alt_screen: bool

    def credentials(self) -> Credentials:
        return Credentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            refresh_token=self.refresh_token,
            cookie=self.cookie,
            access_token=self.access_token,
        )


def load_config(env_file: Path | None = None, *, require_credentials: bool = True) -> AppConfig:
    """
    Build the config from the environment.

    `env_file` is loaded first (existing variables win). With
    `require_credentials` every Spotify credential must be present, otherwise
    ConfigError lists the missing variables. The `authorize` command turns
    this off since it runs before a refresh token exists.
    """
    if env_file is not None and env_file.exists():
        load_dotenv(env_file, override=False)

    values = {field: (os.getenv(var) or "").strip() for field, var in _REQUIRED.items()}
    missing = [var for field, var in _REQUIRED.items() if not values[field]]
    if require_credentials and missing:
        raise ConfigError("Missing required configuration: " + ", ".join(missing))

    return AppConfig(
        client_id=values["client_id"],
        client_secret=values["client_secret"],
        refresh_token=values["refresh_token"],
        cookie=values["cookie"],
        access_token=os.getenv("SPOTIFY_ACCESS_TOKEN") or None,
        redirect_uri=os.getenv("SPOTIFY_REDIRECT_URI", "http://example.com"),
        token_ttl_s=_number("LYRIC_SYNC_TOKEN_TTL", "3600", float),
        idle_poll_ms=_number("LYRIC_SYNC_IDLE_POLL_MS", "5000", int),
        poll_max_attempts=_number("LYRIC_SYNC_POLL_MAX_ATTEMPTS", "10", int),
        poll_backoff_step_ms=_number("LYRIC_SYNC_POLL_BACKOFF_STEP_MS", "5000", int),
        missing_lyrics_retries=_number("LYRIC_SYNC_MISSING_LYRICS_RETRIES", "3", int),
        http_timeout_s=_number("LYRIC_SYNC_HTTP_TIMEOUT", "10.0", float),
        context_lines=_number("LYRIC_SYNC_CONTEXT_LINES", "2", int),
        use_alt_screen=os.getenv("LYRIC_SYNC_ALT_SCREEN", "1") not in ("0", "false", "False"),
    )


def _number(var: str, default: str, kind: type[int] | type[float]) -> int | float:
    raw = os.getenv(var, default)
    try:
        value = kind(raw)
    except ValueError as e:
        raise ConfigError(f"{var} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigError(f"{var} must not be negative, got {raw!r}")
    return value
