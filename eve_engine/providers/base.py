"""Backend protocols."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ..chat.history import ConversationTurn
from ..models import GenerationSettings


@dataclass
class EvolvedImage:
    text: str
    image: str | None


class ChatHandle(Protocol):
    async def send(self, text: str, attachment: str | None = None) -> str:
        ...


class TextBackend(Protocol):
    name: str

    def create_chat(
        self,
        api_key: str,
        system_instruction: str,
        history: Sequence[ConversationTurn],
        settings: GenerationSettings | None,
    ) -> ChatHandle:
        ...

    async def generate_text(self, api_key: str, prompt: str, *, temperature: float = 1.0) -> str:
        ...

    async def evolve_image(self, api_key: str, text: str, attachment: str) -> EvolvedImage:
        ...

    async def probe(self, api_key: str) -> None:
        ...


class ImageBackend(Protocol):
    name: str

    async def generate(self, prompt: str, settings: GenerationSettings, endpoint: str | None) -> str:
        ...
