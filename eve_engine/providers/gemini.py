"""Gemini text backend."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Sequence

try:
    from google import genai  # type: ignore
    from google.genai import types  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore
    types = None  # type: ignore

from ..chat.history import ConversationTurn, to_genai_contents
from ..models import GenerationSettings, decode_data_url, to_data_url
from .base import EvolvedImage

DEFAULT_TEXT_MODEL = "gemini-3-flash-preview"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
PROBE_PROMPT = "test"


def _require_sdk() -> None:
    if genai is None or types is None:
        raise RuntimeError("google-genai package not installed. Run: pip install google-genai")


def build_safety_settings() -> list[Any]:
    """Every harm category set to no blocking; the persona relies on it."""
    return [
        types.SafetySetting(
            category=category,
            threshold=types.HarmBlockThreshold.BLOCK_NONE,
        )
        for category in (
            types.HarmCategory.HARM_CATEGORY_HARASSMENT,
            types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
            types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
            types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        )
    ]


def build_chat_config(system_instruction: str, settings: GenerationSettings | None) -> Any:
    config_kwargs: dict[str, Any] = {
        "system_instruction": system_instruction,
        "safety_settings": build_safety_settings(),
    }
    if settings is not None:
        config_kwargs["temperature"] = settings.temperature
        config_kwargs["top_p"] = settings.top_p
        config_kwargs["top_k"] = settings.top_k
    return types.GenerateContentConfig(**config_kwargs)


def _attachment_part(attachment: str) -> Any:
    decoded = decode_data_url(attachment)
    if decoded is not None:
        mime_type, data = decoded
    else:
        # Bare base64 without a data URL header; assume a camera JPEG.
        try:
            data = base64.b64decode(attachment, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Attachment is not valid base64 image data.") from exc
        mime_type = "image/jpeg"
    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


def _build_message(text: str, attachment: str | None) -> Any:
    if not attachment:
        return text
    return [_attachment_part(attachment), types.Part(text=text)]


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if isinstance(text, str):
        return text
    chunks: list[str] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            chunk = getattr(part, "text", None)
            if isinstance(chunk, str):
                chunks.append(chunk)
    return "".join(chunks)


def _fold_image_response(response: Any) -> EvolvedImage:
    image: str | None = None
    text = ""
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if data is not None:
                if isinstance(data, str):
                    image = f"data:{inline_data.mime_type or 'image/png'};base64,{data}"
                else:
                    image = to_data_url(inline_data.mime_type or "image/png", bytes(data))
                continue
            chunk = getattr(part, "text", None)
            if chunk:
                text += chunk
    return EvolvedImage(text=text, image=image)


class GeminiChatHandle:
    def __init__(self, chat: Any) -> None:
        self._chat = chat

    async def send(self, text: str, attachment: str | None = None) -> str:
        response = await self._chat.send_message(_build_message(text, attachment))
        return _response_text(response)


class GeminiTextBackend:
    name = "gemini"

    def __init__(self, model: str = DEFAULT_TEXT_MODEL, image_model: str = DEFAULT_IMAGE_MODEL) -> None:
        self.model = model
        self.image_model = image_model

    def _client(self, api_key: str) -> Any:
        _require_sdk()
        if not api_key:
            raise RuntimeError("Missing API key. Set GEMINI_API_KEY (or GOOGLE_API_KEY) or add a key.")
        return genai.Client(api_key=api_key)

    def create_chat(
        self,
        api_key: str,
        system_instruction: str,
        history: Sequence[ConversationTurn],
        settings: GenerationSettings | None,
    ) -> GeminiChatHandle:
        client = self._client(api_key)
        chat = client.aio.chats.create(
            model=self.model,
            config=build_chat_config(system_instruction, settings),
            history=to_genai_contents(history, types),
        )
        return GeminiChatHandle(chat)

    async def generate_text(self, api_key: str, prompt: str, *, temperature: float = 1.0) -> str:
        client = self._client(api_key)
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=temperature,
                safety_settings=build_safety_settings(),
            ),
        )
        return _response_text(response)

    async def evolve_image(self, api_key: str, text: str, attachment: str) -> EvolvedImage:
        client = self._client(api_key)
        response = await client.aio.models.generate_content(
            model=self.image_model,
            contents=types.Content(role="user", parts=[_attachment_part(attachment), types.Part(text=text)]),
            config=types.GenerateContentConfig(safety_settings=build_safety_settings()),
        )
        return _fold_image_response(response)

    async def probe(self, api_key: str) -> None:
        client = self._client(api_key)
        await client.aio.models.generate_content(model=self.model, contents=PROBE_PROMPT)
