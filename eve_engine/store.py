"""JSON-backed session file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import GenerationSettings, Message
from .utils import now_ms, read_json, write_json

SESSION_SCHEMA_VERSION = 1


@dataclass
class StoredSession:
    messages: list[Message] = field(default_factory=list)
    last_updated: int | None = None
    language: str | None = None
    active_credential_id: str | None = None
    gradio_endpoint: str | None = None
    settings: GenerationSettings | None = None


class SessionStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> StoredSession:
        payload = read_json(self.path, {})
        session = StoredSession()
        if not isinstance(payload, dict):
            return session
        messages = payload.get("messages", [])
        if isinstance(messages, list):
            for item in messages:
                if isinstance(item, dict):
                    session.messages.append(Message.from_dict(item))
        last_updated = payload.get("last_updated")
        session.last_updated = int(last_updated) if isinstance(last_updated, (int, float)) else None
        session.language = payload.get("language") or None
        session.active_credential_id = payload.get("active_credential_id")
        session.gradio_endpoint = payload.get("gradio_endpoint")
        settings = payload.get("settings")
        if isinstance(settings, dict):
            session.settings = GenerationSettings.from_dict(settings)
        return session

    def save(self, session: StoredSession) -> None:
        payload: dict[str, Any] = {
            "schema_version": SESSION_SCHEMA_VERSION,
            "messages": [message.to_dict() for message in session.messages],
            "last_updated": now_ms(),
            "language": session.language,
            "active_credential_id": session.active_credential_id,
            "gradio_endpoint": session.gradio_endpoint,
            "settings": session.settings.to_dict() if session.settings else None,
        }
        write_json(self.path, payload)

    def clear(self) -> None:
        payload = read_json(self.path, {})
        if not isinstance(payload, dict) or not payload:
            return
        payload["messages"] = []
        payload["last_updated"] = None
        write_json(self.path, payload)
