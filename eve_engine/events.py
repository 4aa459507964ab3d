"""Append-only session event stream (events.jsonl)."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .utils import now_utc_iso, sanitize_payload


@dataclass
class EventWriter:
    """One writer per engine session.

    Every event carries the session id and a per-writer `seq`, so turns,
    key switches and background renders from one session can be put back
    in order even when several sessions share the same file.
    """

    path: Path
    session_id: str
    _seq: int = field(default=0, repr=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, init=False)

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        body = sanitize_payload(payload)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._seq += 1
            event = {
                "type": event_type,
                "session_id": self.session_id,
                "seq": self._seq,
                "ts": now_utc_iso(),
                **body,
            }
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(event, ensure_ascii=False) + "\n")
        return event

    def read(self, event_type: str | None = None) -> list[dict[str, Any]]:
        """This session's events, oldest first, optionally of one type."""
        if not self.path.exists():
            return []
        events = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            event = json.loads(line)
            if event.get("session_id") != self.session_id:
                continue
            if event_type is None or event.get("type") == event_type:
                events.append(event)
        return events
