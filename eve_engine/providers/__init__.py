"""Backend factory."""

from __future__ import annotations

from .base import ImageBackend, TextBackend
from .gemini import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, GeminiTextBackend
from .gradio import GradioImageBackend


def default_backends(
    text_model: str = DEFAULT_TEXT_MODEL,
    image_model: str = DEFAULT_IMAGE_MODEL,
) -> tuple[TextBackend, ImageBackend]:
    return GeminiTextBackend(model=text_model, image_model=image_model), GradioImageBackend()
