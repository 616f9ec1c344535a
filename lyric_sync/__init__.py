"""Time-synchronized lyric lines for the track playing on Spotify."""

__version__ = "0.1.0"
