"""Backend chat-session lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .chat.directives import SCENE_TURN_THRESHOLD
from .chat.history import normalize_history
from .chat.persona import build_system_instruction
from .events import EventWriter
from .models import Credential, GenerationSettings, Message
from .providers.base import ChatHandle, TextBackend


@dataclass(frozen=True)
class SessionBinding:
    credential_id: str | None
    language: str
    # Embeds the wall clock, so it never takes part in binding comparisons.
    system_instruction: str = field(default="", compare=False)


@dataclass
class SessionState:
    language: str = "english"
    active_credential_id: str | None = None
    handle: ChatHandle | None = None
    binding: SessionBinding | None = None
    visual_memory: str = ""
    turn_counter: int = SCENE_TURN_THRESHOLD
    key_statuses: dict[str, str] = field(default_factory=dict)

    def invalidate(self) -> None:
        self.handle = None
        self.binding = None

    def reset_visuals(self) -> None:
        self.visual_memory = ""


class SessionManager:
    def __init__(self, backend: TextBackend, events: EventWriter | None = None) -> None:
        self.backend = backend
        self.events = events

    @staticmethod
    def needs_reinit(state: SessionState, credential: Credential, language: str) -> bool:
        if state.handle is None or state.binding is None:
            return True
        return state.binding != SessionBinding(credential.id, language)

    def ensure_session(
        self,
        state: SessionState,
        credential: Credential,
        language: str,
        history: Iterable[Message],
        settings: GenerationSettings | None,
        away_duration: str | None = None,
    ) -> ChatHandle:
        """Open a fresh chat handle seeded with `history` and bind it to `state`.

        Always reconstructs; callers decide when a rebuild is due. If the seeded
        history is rejected the chat is reopened empty with the same instruction.
        """
        instruction = build_system_instruction(language, away_duration)
        turns = normalize_history(history)
        try:
            handle = self.backend.create_chat(credential.secret, instruction, turns, settings)
            seeded = len(turns)
        except Exception as exc:
            if self.events:
                self.events.emit(
                    "session_fallback",
                    credential_label=credential.label,
                    language=language,
                    error=str(exc),
                )
            handle = self.backend.create_chat(credential.secret, instruction, [], settings)
            seeded = 0
        state.handle = handle
        state.binding = SessionBinding(credential.id, language, instruction)
        state.language = language
        if self.events:
            self.events.emit(
                "session_initialized",
                credential_label=credential.label,
                language=language,
                seeded_turns=seeded,
                away_duration=away_duration,
            )
        return handle
