"""Two-stage visual generation: rephrase with the text backend, render with the image backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..errors import VisualPipelineError, classify
from ..events import EventWriter
from ..models import Credential, GenerationSettings, Message
from ..providers.base import ImageBackend, TextBackend
from .prompts import IMAGE_QUALITY_SUFFIX, build_rephrase_instruction, clean_enhanced_prompt


@dataclass(frozen=True)
class VisualResult:
    image: str
    enhanced_prompt: str


@dataclass(frozen=True)
class VisualPatch:
    message_id: str
    image: str | None = None
    enhanced_prompt: str | None = None
    error: str | None = None


def build_visual_patch(message_id: str, outcome: VisualResult | BaseException) -> VisualPatch:
    if isinstance(outcome, VisualResult):
        return VisualPatch(message_id, image=outcome.image, enhanced_prompt=outcome.enhanced_prompt)
    return VisualPatch(message_id, error=classify(outcome).message)


def apply_visual_patch(messages: Iterable[Message], patch: VisualPatch) -> bool:
    """Patch the message with `patch.message_id` in place; False when it is gone."""
    for message in messages:
        if message.id != patch.message_id:
            continue
        if patch.image:
            message.image = patch.image
        message.is_image_loading = False
        return True
    return False


class VisualPipeline:
    def __init__(self, text_backend: TextBackend, image_backend: ImageBackend, events: EventWriter | None = None) -> None:
        self.text_backend = text_backend
        self.image_backend = image_backend
        self.events = events

    async def rephrase(
        self,
        concept: str,
        visual_type: str,
        prior_memory: str,
        credential: Credential,
    ) -> str:
        instruction = build_rephrase_instruction(concept, visual_type, prior_memory)
        raw = await self.text_backend.generate_text(credential.secret, instruction, temperature=1.0)
        return clean_enhanced_prompt(raw)

    async def render(
        self,
        prompt: str,
        visual_type: str,
        prior_memory: str,
        settings: GenerationSettings,
        credential: Credential,
        endpoint: str | None,
    ) -> VisualResult:
        stage = "rephrase"
        try:
            enhanced = await self.rephrase(prompt, visual_type, prior_memory, credential)
            stage = "render"
            image = await self.image_backend.generate(f"{enhanced}{IMAGE_QUALITY_SUFFIX}", settings, endpoint)
        except Exception as exc:
            classified = classify(exc)
            if self.events:
                self.events.emit(
                    "visual_stage_failed",
                    stage=stage,
                    visual_type=visual_type,
                    error=classified.message,
                    error_kind=classified.kind.value,
                )
            raise VisualPipelineError(classified) from exc
        return VisualResult(image=image, enhanced_prompt=enhanced)
