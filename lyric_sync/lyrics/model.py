from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from lyric_sync.errors import TransportError


@dataclass(frozen=True, slots=True)
class LyricLine:
    offset_ms: int
    text: str


@dataclass(frozen=True, slots=True)
class TimedLyrics:
    """Lines with service-provided offsets from track start."""

    lines: tuple[LyricLine, ...]

    def __len__(self) -> int:
        return len(self.lines)

    def lines_at(self, progress_ms: int, duration_ms: int) -> tuple[LyricLine, ...]:
        # lines already sung are dropped
        return tuple(line for line in self.lines if line.offset_ms > progress_ms)


@dataclass(frozen=True, slots=True)
class UntimedLyrics:
    """Plain lines; offsets are spread evenly over the track duration."""

    texts: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.texts)

    def lines_at(self, progress_ms: int, duration_ms: int) -> tuple[LyricLine, ...]:
        if not self.texts:
            return ()
        step = round(duration_ms / len(self.texts))
        return tuple(LyricLine(step * i, text) for i, text in enumerate(self.texts))


Lyrics = Union[TimedLyrics, UntimedLyrics]


def _join_words(line: dict[str, Any]) -> str:
    words = line.get("words")
    if words is None:
        return ""
    if not isinstance(words, list):
        raise TransportError(None, "malformed lyric line words")
    parts = []
    for w in words:
        s = w.get("string") if isinstance(w, dict) else w
        if s:
            parts.append(str(s).strip())
    return " ".join(p for p in parts if p)


def _offset(line: dict[str, Any]) -> int:
    try:
        return int(line.get("time") or 0)
    except (TypeError, ValueError) as e:
        raise TransportError(None, "malformed lyric line time") from e


def parse_lyrics(payload: dict[str, Any]) -> Lyrics:
    """
    Decide once whether a lyrics payload is timed or untimed.

    The first line carrying a `time` selects the timed shape; timed lines are
    sorted by offset so the pending sequence stays ascending. A line whose
    `time` or `words` has the wrong type raises TransportError.
    """
    raw = payload.get("lines")
    if not isinstance(raw, list):
        raise TransportError(None, "lyrics payload has no 'lines' list")
    lines = [line for line in raw if isinstance(line, dict)]
    if not lines:
        return TimedLyrics(lines=())

    if lines[0].get("time") is not None:
        timed = [LyricLine(_offset(line), _join_words(line)) for line in lines]
        timed.sort(key=lambda line: line.offset_ms)
        return TimedLyrics(lines=tuple(timed))
    return UntimedLyrics(texts=tuple(_join_words(line) for line in lines))
