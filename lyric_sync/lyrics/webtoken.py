from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from lyric_sync.errors import AuthError, TransportError
from lyric_sync.net.transport import HttpTransport

logger = logging.getLogger(__name__)

WEB_TOKEN_URL = "https://open.spotify.com/get_access_token"
WEB_TOKEN_PARAMS = {"reason": "transport", "productType": "web_player"}

# refetch a little before the advertised expiry
_EXPIRY_MARGIN_MS = 30_000


class WebPlayerTokens:
    """Short-lived web-player token obtained with the session cookie."""

    def __init__(
        self,
        transport: HttpTransport,
        cookie: str,
        *,
        wall_clock_ms: Callable[[], float] = lambda: time.time() * 1000,
    ):
        self.transport = transport
        self.cookie = cookie
        self.wall_clock_ms = wall_clock_ms
        self._token: str | None = None
        self._expires_at_ms = 0.0
        self._lock = threading.Lock()

    def get(self) -> str:
        with self._lock:
            if self._token and self.wall_clock_ms() < self._expires_at_ms - _EXPIRY_MARGIN_MS:
                return self._token
            try:
                data = self.transport.get(
                    WEB_TOKEN_URL,
                    {"Cookie": self.cookie},
                    params=WEB_TOKEN_PARAMS,
                    forbidden_as_empty=False,
                )
            except TransportError as e:
                raise AuthError(e.status, f"web-player token request failed: {e.cause}") from e

            token = data.get("accessToken")
            if not token:
                raise AuthError(None, "web-player token response has no accessToken (cookie expired?)")
            self._token = str(token)
            self._expires_at_ms = float(data.get("accessTokenExpirationTimestampMs") or 0)
            logger.debug("Web-player token refreshed, expires at %s", self._expires_at_ms)
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
