"""Flatten a chat log into the alternating turn history Gemini expects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..models import USER_ROLE, Message, decode_data_url

MODEL_TURN = "model"
USER_TURN = "user"
PLACEHOLDER_TEXT = "..."


@dataclass
class TurnPart:
    text: str | None = None
    mime_type: str | None = None
    data: bytes | None = None

    @property
    def is_image(self) -> bool:
        return self.data is not None


@dataclass
class ConversationTurn:
    role: str
    parts: list[TurnPart] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(part.text for part in self.parts if part.text)


def _turn_for_message(message: Message) -> ConversationTurn | None:
    if message.role != USER_ROLE:
        return ConversationTurn(MODEL_TURN, [TurnPart(text=message.text or PLACEHOLDER_TEXT)])
    parts: list[TurnPart] = []
    decoded = decode_data_url(message.image)
    if decoded is not None:
        mime_type, data = decoded
        parts.append(TurnPart(mime_type=mime_type, data=data))
    if message.text:
        parts.append(TurnPart(text=message.text))
    if not parts:
        return None
    return ConversationTurn(USER_TURN, parts)


def normalize_history(messages: Iterable[Message]) -> list[ConversationTurn]:
    """Build a seedable turn history.

    The result never starts with a model turn and never holds two adjacent turns
    with the same role. A history of more than one turn that ends on a user turn
    gets a placeholder model turn so the next live send supplies the user side.
    """
    merged: list[ConversationTurn] = []
    for message in messages or ():
        if message.is_error:
            continue
        turn = _turn_for_message(message)
        if turn is None:
            continue
        if merged and merged[-1].role == turn.role:
            merged[-1].parts.extend(turn.parts)
            continue
        merged.append(turn)

    while merged and merged[0].role == MODEL_TURN:
        merged.pop(0)

    if len(merged) > 1 and merged[-1].role == USER_TURN:
        merged.append(ConversationTurn(MODEL_TURN, [TurnPart(text=PLACEHOLDER_TEXT)]))
    return merged


def to_genai_contents(turns: Iterable[ConversationTurn], types: Any) -> list[Any]:
    contents: list[Any] = []
    for turn in turns:
        parts = []
        for part in turn.parts:
            if part.is_image:
                parts.append(types.Part(inline_data=types.Blob(data=part.data, mime_type=part.mime_type)))
            else:
                parts.append(types.Part(text=part.text or ""))
        contents.append(types.Content(role=turn.role, parts=parts))
    return contents
