from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from lyric_sync.errors import AuthError, TransportError
from lyric_sync.logging_setup import redact

if TYPE_CHECKING:
    from lyric_sync.net.transport import HttpTransport

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"


@dataclass(slots=True)
class Credentials:
    client_id: str
    client_secret: str
    refresh_token: str
    cookie: str
    access_token: str | None = None
    last_refreshed_at: float | None = None


class TokenManager:
    """
    Owns the access/refresh token pair and keeps the access token fresh.

    A token counts as stale once `ttl_s` seconds passed since the last
    successful refresh, or when there never was one. Refreshes are serialized:
    callers that find the token stale queue on one lock and re-check after
    acquiring it, so only the first of them talks to the token endpoint.
    """

    def __init__(
        self,
        credentials: Credentials,
        transport: HttpTransport,
        *,
        ttl_s: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.credentials = credentials
        self.transport = transport
        self.ttl_s = ttl_s
        self.clock = clock
        self._lock = threading.Lock()
        # a token supplied up front counts as freshly issued
        if credentials.access_token and credentials.last_refreshed_at is None:
            credentials.last_refreshed_at = clock()

    def is_stale(self) -> bool:
        c = self.credentials
        if not c.access_token or c.last_refreshed_at is None:
            return True
        return self.clock() - c.last_refreshed_at >= self.ttl_s

    def ensure_fresh(self) -> str:
        if not self.is_stale():
            return self.credentials.access_token  # type: ignore[return-value]
        with self._lock:
            if self.is_stale():
                self._refresh_locked()
            return self.credentials.access_token  # type: ignore[return-value]

    def refresh(self) -> None:
        with self._lock:
            self._refresh_locked()

    def invalidate(self) -> None:
        """Force the next `ensure_fresh` to refresh, e.g. after a 401."""
        with self._lock:
            self.credentials.last_refreshed_at = None

    def _refresh_locked(self) -> None:
        c = self.credentials
        params = {
            "grant_type": "refresh_token",
            "refresh_token": c.refresh_token,
            "client_id": c.client_id,
            "client_secret": c.client_secret,
        }
        try:
            data = self.transport.post(TOKEN_URL, params)
        except TransportError as e:
            logger.error("Token refresh failed: %s", e)
            raise AuthError(e.status, f"token refresh failed: {e.cause}") from e

        token = data.get("access_token")
        if not token:
            raise AuthError(None, "token refresh response has no access_token")

        c.access_token = str(token)
        c.last_refreshed_at = self.clock()
        # Spotify may rotate the refresh token
        if data.get("refresh_token"):
            c.refresh_token = str(data["refresh_token"])
        logger.info("Access token refreshed (%s)", redact(c.access_token))
