from __future__ import annotations

import shutil
import sys
from typing import TextIO

from colorama import Fore, Style, just_fix_windows_console

from lyric_sync.lyrics.model import LyricLine

CSI = "\x1b["


class ConsoleSink:
    """
    Lyric listener that redraws the terminal on every emitted line: the
    current line highlighted, the next `context_lines` dimmed below it.
    """

    def __init__(self, *, context_lines: int = 2, use_alt_screen: bool = True, out: TextIO | None = None):
        self.context_lines = context_lines
        self.use_alt_screen = use_alt_screen
        self.out = out or sys.stdout
        self.title = ""
        self._entered = False

    def __enter__(self):
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exit()

    def enter(self) -> None:
        if self._entered:
            return
        just_fix_windows_console()
        if self.use_alt_screen:
            self.out.write(CSI + "?1049h")  # alt screen
        self.out.write(CSI + "?25l")  # hide cursor
        self.out.write(CSI + "H" + CSI + "2J")
        self.out.flush()
        self._entered = True

    def exit(self) -> None:
        if not self._entered:
            return
        self.out.write(Style.RESET_ALL)
        self.out.write(CSI + "?25h")  # show cursor
        if self.use_alt_screen:
            self.out.write(CSI + "?1049l")
        self.out.flush()
        self._entered = False

    def frame(self, line: LyricLine, remaining: tuple[LyricLine, ...]) -> list[str]:
        cols, _rows = shutil.get_terminal_size(fallback=(80, 24))
        out: list[str] = []
        if self.title:
            out.append(f"{Fore.CYAN}{Style.BRIGHT}♫ {self.title[:cols - 4]} ♫{Style.RESET_ALL}")
        out.append(f"{Fore.GREEN}{Style.BRIGHT}{line.text or '♪'}{Style.RESET_ALL}")
        for upcoming in remaining[: self.context_lines]:
            out.append(f"{Style.DIM}{upcoming.text}{Style.RESET_ALL}")
        return out

    def __call__(self, line: LyricLine, remaining: tuple[LyricLine, ...]) -> None:
        if self._entered:
            self.out.write(CSI + "H" + CSI + "2J")
        self.out.write("\n".join(self.frame(line, remaining)) + "\n")
        self.out.flush()
