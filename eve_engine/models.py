"""Conversation data model."""

from __future__ import annotations

import base64
import binascii
import itertools
import re
import time
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Literal, Mapping

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"

Language = Literal["english", "manglish"]

LANGUAGES: tuple[str, ...] = ("english", "manglish")

_DATA_URL_PATTERN = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)
_ID_COUNTER = itertools.count()


def new_message_id() -> str:
    # Millisecond stamp plus a process-local sequence so ids stay unique within one tick.
    return f"{int(time.time() * 1000)}-{next(_ID_COUNTER):04d}"


def split_data_url(value: str | None) -> tuple[str, str] | None:
    """Return `(mime_type, base64_payload)` for a data URL, or None."""
    if not value or not value.startswith("data:"):
        return None
    match = _DATA_URL_PATTERN.match(value)
    if not match:
        return None
    mime_type, payload = match.group(1).strip(), match.group(2).strip()
    if not mime_type or not payload:
        return None
    return mime_type, payload


def decode_data_url(value: str | None) -> tuple[str, bytes] | None:
    parsed = split_data_url(value)
    if parsed is None:
        return None
    mime_type, payload = parsed
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None


def to_data_url(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


@dataclass
class Message:
    id: str
    role: str
    text: str
    image: str | None = None
    is_error: bool = False
    is_image_loading: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Message":
        role = payload.get("role", USER_ROLE)
        # Older session files used the backend's name for the assistant role.
        if role == "model":
            role = ASSISTANT_ROLE
        return cls(
            id=str(payload.get("id") or new_message_id()),
            role=role,
            text=str(payload.get("text") or ""),
            image=payload.get("image"),
            is_error=bool(payload.get("is_error", False)),
            is_image_loading=False,
        )


def user_message(text: str, image: str | None = None) -> Message:
    return Message(id=new_message_id(), role=USER_ROLE, text=text, image=image)


def assistant_message(text: str, *, is_error: bool = False, message_id: str | None = None) -> Message:
    return Message(id=message_id or new_message_id(), role=ASSISTANT_ROLE, text=text, is_error=is_error)


@dataclass(frozen=True)
class Credential:
    id: str
    label: str
    secret: str


@dataclass
class GenerationSettings:
    # Rendering knobs.
    guidance: float = 5.0
    steps: int = 30
    ip_adapter_strength: float = 0.8
    lora_strength: float = 0.8
    seed: int = 42
    randomize_seed: bool = True
    use_magic: bool = False
    ai_image_generation: bool = True
    # Sampling knobs.
    temperature: float = 1.0
    top_p: float = 0.95
    top_k: int = 40

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "GenerationSettings":
        settings = cls()
        if not payload:
            return settings
        return settings.updated(**{k: v for k, v in payload.items() if k in _SETTING_TYPES})

    def updated(self, **changes: Any) -> "GenerationSettings":
        coerced: dict[str, Any] = {}
        for name, value in changes.items():
            kind = _SETTING_TYPES.get(name)
            if kind is None:
                raise KeyError(f"Unknown generation setting: {name}")
            coerced[name] = _coerce_setting(kind, value)
        return replace(self, **coerced)


_SETTING_TYPES: dict[str, str] = {f.name: str(f.type) for f in fields(GenerationSettings)}


def _coerce_setting(kind: str, value: Any) -> Any:
    if kind == "bool":
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if kind == "int":
        return int(float(value))
    return float(value)
