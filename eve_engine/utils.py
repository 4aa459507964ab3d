"""Timestamps, event payload scrubbing and JSON files."""

from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from .models import split_data_url

_SECRET_FIELDS = {"secret", "api_key", "apikey", "key", "authorization"}


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    return int(time.time() * 1000)


def sanitize_payload(payload: Any) -> Any:
    """Make an event payload safe to log.

    Credential fields are redacted wherever they appear, and inline images
    (data URLs from attachments or evolved pictures) are replaced by a short
    `<mime inline, N chars>` marker so events.jsonl never carries image bytes.
    """
    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        inline = split_data_url(payload)
        if inline is not None:
            return f"<{inline[0]} inline, {len(payload)} chars>"
        return payload
    if isinstance(payload, bytes):
        return f"<bytes:{len(payload)}>"
    if isinstance(payload, Mapping):
        sanitized: dict[str, Any] = {}
        for key, value in payload.items():
            if str(key).lower() in _SECRET_FIELDS:
                sanitized[str(key)] = "<redacted>"
            else:
                sanitized[str(key)] = sanitize_payload(value)
        return sanitized
    if isinstance(payload, (list, tuple)):
        return [sanitize_payload(item) for item in payload]
    return str(payload)


def read_json(path: Path, default: Any) -> Any:
    # A missing, unreadable or half-written file reads as `default`.
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return default


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)
