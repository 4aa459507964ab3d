from __future__ import annotations

import time

from eve_engine.cli_progress import ProgressTicker, format_duration, separator_line


class FakeStream:
    def __init__(self, is_tty: bool) -> None:
        self._isatty = is_tty
        self.buffer: list[str] = []

    def isatty(self) -> bool:  # pragma: no cover - signature mimic
        return self._isatty

    def write(self, data: str) -> None:
        self.buffer.append(data)

    def flush(self) -> None:  # pragma: no cover - no-op for tests
        return None

    @property
    def text(self) -> str:
        return "".join(self.buffer)


def test_ticker_non_tty_prints_once() -> None:
    stream = FakeStream(is_tty=False)
    ticker = ProgressTicker("Eve is typing", stream=stream, interval_s=0.01)
    ticker.start_ticking()
    ticker.stop(done=True)
    output = stream.text
    lines = [line for line in output.splitlines() if line.strip()]
    assert len(lines) == 2
    assert "Eve is typing" in lines[0]
    assert "Replied in" in lines[1]
    assert "\r" not in output


def test_ticker_tty_updates_in_place() -> None:
    stream = FakeStream(is_tty=True)
    ticker = ProgressTicker("Eve is typing", stream=stream, interval_s=0.01)
    ticker.start_ticking()
    time.sleep(0.03)
    ticker.stop(done=True)
    output = stream.text
    assert "\r" in output
    assert "\x1b[K" in output
    assert output.count("Replied in") == 1


def test_ticker_interrupted_skips_summary() -> None:
    stream = FakeStream(is_tty=False)
    with_error = ProgressTicker("Eve is typing", stream=stream)
    with_error.start_ticking()
    with_error.stop(done=False)
    assert "Replied in" not in stream.text


def test_format_helpers() -> None:
    assert format_duration(5) == "5s"
    assert format_duration(65) == "1m 05s"
    assert format_duration(3725) == "1h 2m 05s"
    assert separator_line("done", 4) == "done"
    assert separator_line("done", 20).startswith("─")
