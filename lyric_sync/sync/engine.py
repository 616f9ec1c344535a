"""
Cycle transitions of the sync session.

Every function here is pure: it takes the current SyncState plus whatever the
cycle observed and returns a Decision. The session applies the decision
(commits the state, emits, arms the timer); nothing in this module does I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from lyric_sync.lyrics.model import LyricLine
from lyric_sync.player.model import PlaybackSnapshot, Track

IDLE_POLL_MS = 5000


@dataclass(frozen=True, slots=True)
class SyncState:
    current_track_id: str | None = None
    previous_track_id: str | None = None
    track_name: str = ""
    track_duration_ms: int = 0
    progress_ms: int = 0
    pending_lines: tuple[LyricLine, ...] = ()
    has_lyrics: bool = False
    # lyrics still to be (re)fetched for the current track
    needs_lyrics: bool = False
    lyric_attempts: int = 0


@dataclass(frozen=True, slots=True)
class Emission:
    line: LyricLine
    remaining: tuple[LyricLine, ...]


@dataclass(frozen=True, slots=True)
class Decision:
    state: SyncState
    delay_ms: int
    emission: Emission | None = None
    fetch: bool = False


def reset_for_track(state: SyncState, track: Track, progress_ms: int) -> SyncState:
    return SyncState(
        current_track_id=track.id,
        previous_track_id=state.current_track_id,
        track_name=track.name,
        track_duration_ms=track.duration_ms,
        progress_ms=progress_ms,
        pending_lines=(),
        has_lyrics=False,
        needs_lyrics=True,
        lyric_attempts=0,
    )


def decide(state: SyncState, snapshot: PlaybackSnapshot, *, idle_ms: int = IDLE_POLL_MS) -> Decision:
    # Paused, stopped, or playing something without a track id (ads)
    if not snapshot.is_playing or snapshot.track is None:
        return Decision(state, idle_ms)

    if snapshot.track.id != state.current_track_id:
        return Decision(reset_for_track(state, snapshot.track, snapshot.progress_ms), 0, fetch=True)

    if state.pending_lines:
        line, *rest = state.pending_lines
        remaining = tuple(rest)
        delay = remaining[0].offset_ms - line.offset_ms if remaining else idle_ms
        new_state = replace(state, pending_lines=remaining, progress_ms=snapshot.progress_ms)
        return Decision(new_state, max(delay, 0), emission=Emission(line, remaining))

    if state.needs_lyrics:
        return Decision(replace(state, progress_ms=snapshot.progress_ms), 0, fetch=True)

    return Decision(replace(state, progress_ms=snapshot.progress_ms), idle_ms)


def apply_lyrics(
    state: SyncState,
    lines: tuple[LyricLine, ...],
    progress_ms: int,
    *,
    idle_ms: int = IDLE_POLL_MS,
    max_attempts: int = 1,
    exhausted: bool = False,
) -> Decision:
    """
    Load freshly fetched lines. `exhausted` marks a payload that had lines,
    all of them already behind `progress_ms`: the track is settled instead of
    being counted as missing lyrics.
    """
    if not lines and exhausted:
        new_state = replace(
            state,
            pending_lines=(),
            has_lyrics=True,
            needs_lyrics=False,
            progress_ms=progress_ms,
            lyric_attempts=state.lyric_attempts + 1,
        )
        return Decision(new_state, idle_ms)
    if not lines:
        return note_missing_lyrics(state, idle_ms=idle_ms, max_attempts=max_attempts)

    new_state = replace(
        state,
        pending_lines=tuple(lines),
        has_lyrics=True,
        needs_lyrics=False,
        progress_ms=progress_ms,
        lyric_attempts=state.lyric_attempts + 1,
    )
    # untimed lines start at 0, so the first one is usually already due
    return Decision(new_state, max(lines[0].offset_ms - progress_ms, 0))


def note_missing_lyrics(state: SyncState, *, idle_ms: int = IDLE_POLL_MS, max_attempts: int = 1) -> Decision:
    attempts = state.lyric_attempts + 1
    new_state = replace(
        state,
        pending_lines=(),
        has_lyrics=False,
        needs_lyrics=attempts < max_attempts,
        lyric_attempts=attempts,
    )
    return Decision(new_state, idle_ms)
