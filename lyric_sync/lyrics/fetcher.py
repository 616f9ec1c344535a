from __future__ import annotations

import logging

from lyric_sync.errors import TransportError
from lyric_sync.net.transport import HttpTransport

from .model import LyricLine, Lyrics, parse_lyrics

logger = logging.getLogger(__name__)

LYRICS_URL = "https://spclient.wg.spotify.com/lyrics/v1/track/{track_id}"


class LyricFetcher:
    def __init__(self, transport: HttpTransport):
        self.transport = transport

    def fetch_raw(self, track_id: str, web_token: str) -> Lyrics:
        data = self.transport.get(
            LYRICS_URL.format(track_id=track_id),
            {"Authorization": f"Bearer {web_token}", "Content-Type": "application/json"},
        )
        return parse_lyrics(data)

    def fetch(
        self,
        track_id: str,
        web_token: str,
        *,
        progress_ms: int,
        duration_ms: int,
    ) -> tuple[LyricLine, ...]:
        """
        Normalized lines for a track as seen from `progress_ms`.

        An empty tuple means the track has no lyrics (the endpoint's 403 lands
        here too); transport failures other than that raise TransportError.
        """
        try:
            lyrics = self.fetch_raw(track_id, web_token)
        except TransportError as e:
            logger.warning("Lyrics fetch for %s failed: %s", track_id, e)
            raise
        lines = lyrics.lines_at(progress_ms, duration_ms)
        logger.debug(
            "%s: %s lyrics, %s lines pending at %sms",
            track_id,
            type(lyrics).__name__,
            len(lines),
            progress_ms,
        )
        return lines
