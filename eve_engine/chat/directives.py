"""In-band visual directives embedded in assistant replies.

A reply may carry `[SELFIE]`, `[SELFIE: desc]`, `[SCENE]` or `[SCENE: desc]`.
Tags are never shown to the user. Whether a tag turns into an image request
depends on the image toggle, the user's wording and how many text-only replies
have gone by since the last picture.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..models import GenerationSettings

SELFIE = "selfie"
SCENE = "scene"
TEXT = "text"

_KEYWORDS = {"SELFIE": SELFIE, "SCENE": SCENE}

TRIGGER_WORDS: tuple[str, ...] = (
    "photo",
    "pic",
    "selfie",
    "image",
    "see you",
    "show me",
    "nude",
    "naked",
    "look at you",
    "send me",
)
SCENE_TURN_THRESHOLD = 4

DEFAULT_SELFIE_PROMPT = "looking at the camera"
DEFAULT_SCENE_PROMPT = "a scenic view from the user's perspective"
MISSING_ENDPOINT_APOLOGY = "\n\n(I tried to show you, but my visual cortex isn't connected!)"


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    description: str | None = None


@dataclass(frozen=True)
class DirectiveResult:
    cleaned_text: str
    visual_prompt: str | None
    visual_type: str
    turn_counter: int


def _match_directive(text: str, start: int) -> tuple[Token, int] | None:
    """Try to read one directive at `text[start] == "["`; return it and the end index."""
    for keyword, kind in _KEYWORDS.items():
        head = start + 1
        if not text.startswith(keyword, head):
            continue
        pos = head + len(keyword)
        if pos >= len(text):
            return None
        if text[pos] == "]":
            return Token(kind, text[start : pos + 1]), pos + 1
        if text[pos] != ":":
            continue
        pos += 1
        while pos < len(text) and text[pos].isspace():
            pos += 1
        desc_start = pos
        while pos < len(text) and text[pos] != "]":
            if text[pos] == "\n":
                return None
            pos += 1
        if pos >= len(text):
            return None
        description = text[desc_start:pos].strip()
        return Token(kind, text[start : pos + 1], description or None), pos + 1
    return None


def scan_directives(text: str) -> list[Token]:
    tokens: list[Token] = []
    buffer: list[str] = []
    idx = 0
    while idx < len(text):
        char = text[idx]
        if char == "[":
            matched = _match_directive(text, idx)
            if matched is not None:
                token, idx = matched
                if buffer:
                    tokens.append(Token(TEXT, "".join(buffer)))
                    buffer = []
                tokens.append(token)
                continue
        buffer.append(char)
        idx += 1
    if buffer:
        tokens.append(Token(TEXT, "".join(buffer)))
    return tokens


def user_requests_image(user_text: str, trigger_words: Sequence[str] = TRIGGER_WORDS) -> bool:
    lowered = (user_text or "").lower()
    return any(word in lowered for word in trigger_words)


def parse_reply(
    reply_text: str,
    settings: GenerationSettings,
    user_text: str,
    turn_counter: int,
    image_endpoint: str | None,
    *,
    trigger_words: Sequence[str] = TRIGGER_WORDS,
    scene_threshold: int = SCENE_TURN_THRESHOLD,
) -> DirectiveResult:
    tokens = scan_directives(reply_text or "")
    selfie = next((token for token in tokens if token.kind == SELFIE), None)
    scene = next((token for token in tokens if token.kind == SCENE), None)
    cleaned = "".join(token.value for token in tokens if token.kind == TEXT).strip()

    visual_prompt: str | None = None
    visual_type = SCENE
    if not settings.ai_image_generation:
        turn_counter += 1
    elif selfie is not None:
        visual_prompt = selfie.description or DEFAULT_SELFIE_PROMPT
        visual_type = SELFIE
        turn_counter = 0
    elif scene is not None and (
        user_requests_image(user_text, trigger_words) or turn_counter >= scene_threshold
    ):
        visual_prompt = scene.description or DEFAULT_SCENE_PROMPT
        turn_counter = 0
    else:
        turn_counter += 1

    if visual_prompt and not (image_endpoint or "").strip():
        cleaned += MISSING_ENDPOINT_APOLOGY
        visual_prompt = None

    return DirectiveResult(
        cleaned_text=cleaned,
        visual_prompt=visual_prompt,
        visual_type=visual_type,
        turn_counter=turn_counter,
    )
