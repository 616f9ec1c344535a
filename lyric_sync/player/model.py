from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Track:
    id: str
    name: str
    duration_ms: int


@dataclass(frozen=True, slots=True)
class PlaybackSnapshot:
    is_playing: bool
    progress_ms: int
    track: Track | None = None

    @property
    def track_id(self) -> str | None:
        return self.track.id if self.track else None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "PlaybackSnapshot":
        # `{}` (204, nothing active) reads as not playing
        item = data.get("item") or None
        track = None
        if isinstance(item, dict) and item.get("id"):
            track = Track(
                id=str(item["id"]),
                name=str(item.get("name") or ""),
                duration_ms=int(item.get("duration_ms") or 0),
            )
        return cls(
            is_playing=bool(data.get("is_playing")),
            progress_ms=int(data.get("progress_ms") or 0),
            track=track,
        )
