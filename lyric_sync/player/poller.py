from __future__ import annotations

import logging
import threading
from typing import Callable

from lyric_sync.auth.tokens import TokenManager
from lyric_sync.errors import LyricSyncError, RateLimited, SessionStopped, TransportError
from lyric_sync.net.transport import HttpTransport

from .model import PlaybackSnapshot

logger = logging.getLogger(__name__)

PLAYER_URL = "https://api.spotify.com/v1/me/player"

# Blocks for the given seconds; returns True when interrupted.
Waiter = Callable[[float], bool]


def _never_interrupted() -> Waiter:
    return threading.Event().wait


class PlayerPoller:
    """
    Fetches the current playback state, retrying failed requests with a
    linearly growing delay: attempt n waits n * backoff_step_ms first.
    """

    def __init__(
        self,
        transport: HttpTransport,
        tokens: TokenManager,
        *,
        max_attempts: int = 10,
        backoff_step_ms: int = 5000,
        wait: Waiter | None = None,
    ):
        self.transport = transport
        self.tokens = tokens
        self.max_attempts = max(max_attempts, 1)
        self.backoff_step_ms = backoff_step_ms
        self.wait = wait or _never_interrupted()

    def poll_once(self) -> PlaybackSnapshot:
        data = self.transport.get(PLAYER_URL, bearer=self.tokens, forbidden_as_empty=False)
        return PlaybackSnapshot.from_payload(data)

    def poll(self) -> PlaybackSnapshot:
        delay_ms = 0
        for attempt in range(self.max_attempts):
            delay_ms = max(delay_ms, attempt * self.backoff_step_ms)
            if delay_ms and self.wait(delay_ms / 1000):
                raise SessionStopped("poll cancelled")
            try:
                return self.poll_once()
            except LyricSyncError as e:
                if isinstance(e, TransportError) and e.status == 401:
                    # supplied or revoked access token; refresh before the retry
                    self.tokens.invalidate()
                if attempt + 1 >= self.max_attempts:
                    logger.error("Player poll failed after %s attempts: %s", self.max_attempts, e)
                    raise
                if isinstance(e, RateLimited) and e.retry_after_s:
                    delay_ms = max(delay_ms, int(e.retry_after_s * 1000))
                logger.warning(
                    "Player poll failed (attempt %s/%s), retrying in %sms: %s",
                    attempt + 1,
                    self.max_attempts,
                    max(delay_ms, (attempt + 1) * self.backoff_step_ms),
                    e,
                )
        raise AssertionError("unreachable")
