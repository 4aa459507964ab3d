"""Backend failure taxonomy."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Mapping

QUOTA_MARKERS = ("429", "exhausted", "quota")
AUTH_MARKERS = ("403", "key")

QUOTA_USER_TEXT = "I've hit my usage limit for now (Quota Exceeded)."
AUTH_USER_TEXT = "API key invalid."
GENERAL_USER_TEXT = "Connection interrupted."
EXHAUSTED_USER_TEXT = (
    "All available API keys have exceeded their quota. Please add a new key or check your billing."
)


class ErrorKind(str, enum.Enum):
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    AUTH_ERROR = "AUTH_ERROR"
    GENERAL = "GENERAL"


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str

    @property
    def user_text(self) -> str:
        if self.kind is ErrorKind.QUOTA_EXCEEDED:
            return QUOTA_USER_TEXT
        if self.kind is ErrorKind.AUTH_ERROR:
            return AUTH_USER_TEXT
        return GENERAL_USER_TEXT

    @property
    def is_quota(self) -> bool:
        return self.kind is ErrorKind.QUOTA_EXCEEDED


class EveError(RuntimeError):
    """Base class for errors raised inside the engine."""


class ImageBackendError(EveError):
    pass


class VisualPipelineError(EveError):
    def __init__(self, classified: ClassifiedError) -> None:
        super().__init__(classified.message)
        self.classified = classified


def error_message(raw: Any) -> str:
    """Best-effort human-readable text for any failure shape."""
    if isinstance(raw, BaseException):
        text = str(raw)
        if not text:
            text = str(getattr(raw, "message", "") or "") or type(raw).__name__
        return text
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        if raw.get("message"):
            return str(raw["message"])
    elif raw is not None and getattr(raw, "message", None):
        return str(raw.message)
    if raw is not None and not isinstance(raw, (int, float, bool)):
        try:
            return json.dumps(raw)
        except (TypeError, ValueError):
            return str(raw)
    return str(raw)


def classify(raw: Any) -> ClassifiedError:
    if isinstance(raw, VisualPipelineError):
        return raw.classified
    message = error_message(raw)
    lowered = message.lower()
    if any(marker in lowered for marker in QUOTA_MARKERS):
        return ClassifiedError(ErrorKind.QUOTA_EXCEEDED, message)
    if any(marker in lowered for marker in AUTH_MARKERS):
        return ClassifiedError(ErrorKind.AUTH_ERROR, message)
    return ClassifiedError(ErrorKind.GENERAL, message)
