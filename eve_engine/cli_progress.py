"""Terminal progress indicator for in-flight turns."""

from __future__ import annotations

import os
import shutil
import sys
import threading
import time
from typing import TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def typing_line(label: str, start: float) -> str:
    elapsed = int(time.monotonic() - start)
    return f"• {label} ({format_duration(elapsed)} • ctrl-c to interrupt)"


def separator_line(label: str, width: int) -> str:
    content = f" {label} "
    if width <= len(content) + 2:
        return content.strip()
    remaining = width - len(content)
    left = remaining // 2
    return f"{'─' * left}{content}{'─' * (remaining - left)}"


def terminal_width(stream: TextIO | None, fallback: int = 100) -> int:
    if stream is not None and hasattr(stream, "fileno"):
        try:
            return os.get_terminal_size(stream.fileno()).columns
        except (OSError, ValueError):
            pass
    return shutil.get_terminal_size(fallback=(fallback, 20)).columns


class ProgressTicker:
    """Redraws a single status line once per interval while a turn is pending.

    On non-tty streams it prints the start line once and the summary line on stop.
    """

    def __init__(
        self,
        label: str,
        stream: TextIO | None = None,
        interval_s: float = 1.0,
        done_label: str = "Replied in",
    ) -> None:
        self.label = label
        self.done_label = done_label
        self.stream = stream or sys.stdout
        self.interval_s = max(0.2, interval_s)
        self.start = time.monotonic()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._tty = bool(getattr(self.stream, "isatty", lambda: False)())

    def __enter__(self) -> "ProgressTicker":
        self.start_ticking()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop(done=exc_type is None)

    def start_ticking(self) -> None:
        self.start = time.monotonic()
        if not self._tty:
            self.stream.write(f"{typing_line(self.label, self.start)}\n")
            self.stream.flush()
            return
        self._redraw(typing_line(self.label, self.start))
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self, done: bool = True) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if not done:
            if self._tty:
                self.stream.write("\r\033[K")
                self.stream.flush()
            return
        elapsed = format_duration(int(time.monotonic() - self.start))
        line = f"{_GREY}{separator_line(f'{self.done_label} {elapsed}', terminal_width(self.stream))}{_RESET}"
        if self._tty:
            self.stream.write(f"\r{line}\033[K\n")
        else:
            self.stream.write(f"{line}\n")
        self.stream.flush()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            self._redraw(typing_line(self.label, self.start))

    def _redraw(self, line: str) -> None:
        self.stream.write(f"\r{_BOLD}{line}{_RESET}\033[K")
        self.stream.flush()
