"""Gradio image backend."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

try:
    from gradio_client import Client  # type: ignore
except Exception:  # pragma: no cover
    Client = None  # type: ignore

from ..errors import ImageBackendError, error_message
from ..models import GenerationSettings

NEGATIVE_PROMPT = "bad anatomy, extra fingers, bad quality, blurry, lowres"
MISSING_ENDPOINT_MESSAGE = "Gradio endpoint not configured."
NO_IMAGE_MESSAGE = "No image URL returned."


def build_predict_args(prompt: str, settings: GenerationSettings) -> list[Any]:
    """Positional inputs of the render function, in the app's declared order."""
    return [
        prompt,
        NEGATIVE_PROMPT,
        None,  # reference image upload
        float(settings.ip_adapter_strength),
        float(settings.guidance),
        int(settings.steps),
        int(settings.seed),
        bool(settings.randomize_seed),
        bool(settings.use_magic),
    ]


def extract_image_reference(result: Any) -> str:
    item = result
    if isinstance(result, (list, tuple)):
        if not result:
            raise ImageBackendError(NO_IMAGE_MESSAGE)
        item = result[0]
    if isinstance(item, Mapping):
        reference = item.get("url") or item.get("path")
        if reference:
            return str(reference)
    if isinstance(item, str) and item.strip():
        return item
    raise ImageBackendError(NO_IMAGE_MESSAGE)


class GradioImageBackend:
    name = "gradio"

    def __init__(self, fn_index: int = 0) -> None:
        self.fn_index = fn_index

    def _predict(self, endpoint: str, args: list[Any]) -> Any:
        if Client is None:
            raise RuntimeError("gradio_client package not installed. Run: pip install gradio_client")
        client = Client(endpoint)
        return client.predict(*args, fn_index=self.fn_index)

    async def generate(self, prompt: str, settings: GenerationSettings, endpoint: str | None) -> str:
        if not endpoint or not endpoint.strip():
            raise ImageBackendError(MISSING_ENDPOINT_MESSAGE)
        args = build_predict_args(prompt, settings)
        try:
            # gradio_client is blocking (connect + job polling); keep it off the event loop.
            result = await asyncio.to_thread(self._predict, endpoint.strip(), args)
        except ImageBackendError:
            raise
        except Exception as exc:
            raise ImageBackendError(error_message(exc)) from exc
        return extract_image_reference(result)
