from __future__ import annotations

import enum
import logging
import threading
from typing import Callable

import requests

from lyric_sync.auth.tokens import TokenManager
from lyric_sync.config import AppConfig
from lyric_sync.errors import LyricSyncError, SessionStopped
from lyric_sync.lyrics.fetcher import LyricFetcher
from lyric_sync.lyrics.model import LyricLine
from lyric_sync.lyrics.webtoken import WebPlayerTokens
from lyric_sync.net.transport import HttpTransport
from lyric_sync.player.model import PlaybackSnapshot
from lyric_sync.player.poller import PlayerPoller

from . import engine
from .engine import Decision, Emission, SyncState

logger = logging.getLogger(__name__)

LyricListener = Callable[[LyricLine, tuple[LyricLine, ...]], None]


class Phase(enum.Enum):
    IDLE = "idle"
    WAITING_FOR_PLAYBACK = "waiting_for_playback"
    TRACK_LOADING = "track_loading"
    EMITTING = "emitting"
    STOPPED = "stopped"


class SyncSession:
    """
    Poll -> decide -> schedule-next loop for one listening user.

    Exactly one timer is pending at a time: the loop waits on `_stop` for the
    delay the last cycle returned, so `stop()` both cancels that wait and ends
    the loop. State is only written by the thread running the cycles.
    """

    def __init__(
        self,
        poller: PlayerPoller,
        fetcher: LyricFetcher,
        web_tokens: WebPlayerTokens,
        *,
        idle_poll_ms: int = engine.IDLE_POLL_MS,
        missing_lyrics_retries: int = 3,
        stop_event: threading.Event | None = None,
    ):
        self.poller = poller
        self.fetcher = fetcher
        self.web_tokens = web_tokens
        self.idle_poll_ms = idle_poll_ms
        self.max_lyric_attempts = 1 + max(missing_lyrics_retries, 0)

        self.state = SyncState()
        self.phase = Phase.IDLE
        self._stop = stop_event or threading.Event()
        self._listeners: list[LyricListener] = []
        self._thread: threading.Thread | None = None

    @classmethod
    def from_config(cls, cfg: AppConfig, http: requests.Session | None = None) -> "SyncSession":
        stop = threading.Event()
        transport = HttpTransport(http, timeout_s=cfg.http_timeout_s)
        tokens = TokenManager(cfg.credentials(), transport, ttl_s=cfg.token_ttl_s)
        poller = PlayerPoller(
            transport,
            tokens,
            max_attempts=cfg.poll_max_attempts,
            backoff_step_ms=cfg.poll_backoff_step_ms,
            wait=stop.wait,
        )
        return cls(
            poller,
            LyricFetcher(transport),
            WebPlayerTokens(transport, cfg.cookie),
            idle_poll_ms=cfg.idle_poll_ms,
            missing_lyrics_retries=cfg.missing_lyrics_retries,
            stop_event=stop,
        )

    # -- listeners ---------------------------------------------------------

    def on_lyric(self, listener: LyricListener) -> LyricListener:
        """Register `listener(current_line, remaining_lines)`; usable as a decorator."""
        self._listeners.append(listener)
        return listener

    def _emit(self, emission: Emission) -> None:
        if self._stop.is_set():
            return
        for listener in list(self._listeners):
            try:
                listener(emission.line, emission.remaining)
            except Exception:
                logger.exception("Lyric listener %r failed", listener)

    # -- lifecycle ---------------------------------------------------------

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self) -> threading.Thread:
        if self._thread and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self.run_forever, name="lyric-sync", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread:
            self._thread.join(timeout)

    def run_forever(self) -> None:
        delay_ms = 0
        try:
            while not self._stop.wait(delay_ms / 1000):
                try:
                    delay_ms = self.run_cycle()
                except SessionStopped:
                    break
                except Exception:
                    # keep the session alive whatever happens inside one cycle
                    logger.exception("Unexpected error during sync cycle")
                    delay_ms = self.idle_poll_ms
                logger.debug("Next cycle in %sms (phase=%s)", delay_ms, self.phase.value)
        finally:
            self.phase = Phase.STOPPED
            logger.info("Sync session stopped")

    # -- one cycle ---------------------------------------------------------

    def run_cycle(self) -> int:
        """Run one poll/decide cycle and return the delay before the next one (ms)."""
        if self._stop.is_set():
            raise SessionStopped("session stopped")

        try:
            snapshot = self.poller.poll()
        except SessionStopped:
            raise
        except LyricSyncError as e:
            logger.error("Skipping cycle, playback state unavailable: %s", e)
            self.phase = Phase.WAITING_FOR_PLAYBACK
            return self.idle_poll_ms

        decision = engine.decide(self.state, snapshot, idle_ms=self.idle_poll_ms)
        if not snapshot.is_playing:
            logger.debug("Not playing, waiting %sms", decision.delay_ms)
        elif decision.state.current_track_id != self.state.current_track_id:
            logger.info("Now playing: %s (%s)", decision.state.track_name, decision.state.current_track_id)
        self.state = decision.state

        if decision.fetch:
            decision = self._load_lyrics(snapshot)
            self.state = decision.state

        if decision.emission:
            self._emit(decision.emission)
        self.phase = Phase.EMITTING if self.state.pending_lines else Phase.WAITING_FOR_PLAYBACK
        return decision.delay_ms

    def _load_lyrics(self, snapshot: PlaybackSnapshot) -> Decision:
        self.phase = Phase.TRACK_LOADING
        state = self.state
        track_id = state.current_track_id
        if track_id is None:
            return Decision(state, self.idle_poll_ms)

        try:
            token = self.web_tokens.get()
            lyrics = self.fetcher.fetch_raw(track_id, token)
        except LyricSyncError as e:
            if getattr(e, "status", None) == 401:
                self.web_tokens.invalidate()
            logger.warning("Could not load lyrics for %s: %s", track_id, e)
            return engine.note_missing_lyrics(
                state, idle_ms=self.idle_poll_ms, max_attempts=self.max_lyric_attempts
            )

        lines = lyrics.lines_at(snapshot.progress_ms, state.track_duration_ms)
        decision = engine.apply_lyrics(
            state,
            lines,
            snapshot.progress_ms,
            idle_ms=self.idle_poll_ms,
            max_attempts=self.max_lyric_attempts,
            exhausted=len(lyrics) > 0,
        )
        if lines:
            logger.debug("%s: %s lines pending at %sms", track_id, len(lines), snapshot.progress_ms)
        elif len(lyrics):
            logger.info("All lyric lines of %s are already past", state.track_name or track_id)
        elif decision.state.needs_lyrics:
            logger.info("No lyrics found for this song, retrying in %sms", self.idle_poll_ms)
        else:
            logger.info("No lyrics for %s, giving up on this track", state.track_name or track_id)
        return decision
