from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace

import pytest

from eve_engine.chat.history import ConversationTurn, TurnPart
from eve_engine.models import GenerationSettings
from eve_engine.providers import gemini
from eve_engine.providers.gemini import GeminiTextBackend, build_chat_config


def _factory(kind: str):
    def build(**kwargs):
        return SimpleNamespace(kind=kind, **kwargs)

    return build


FAKE_TYPES = SimpleNamespace(
    SafetySetting=_factory("safety"),
    HarmBlockThreshold=SimpleNamespace(BLOCK_NONE="BLOCK_NONE"),
    HarmCategory=SimpleNamespace(
        HARM_CATEGORY_HARASSMENT="HARASSMENT",
        HARM_CATEGORY_HATE_SPEECH="HATE_SPEECH",
        HARM_CATEGORY_SEXUALLY_EXPLICIT="SEXUALLY_EXPLICIT",
        HARM_CATEGORY_DANGEROUS_CONTENT="DANGEROUS_CONTENT",
    ),
    GenerateContentConfig=_factory("config"),
    Part=_factory("part"),
    Blob=_factory("blob"),
    Content=_factory("content"),
)


class FakeChat:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.sent: list = []

    async def send_message(self, message):
        self.sent.append(message)
        return SimpleNamespace(text=self.reply)


class FakeClient:
    instances: list["FakeClient"] = []
    response = SimpleNamespace(text="pong", candidates=[])

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.chat_kwargs: dict = {}
        self.generate_calls: list[dict] = []
        self.chat = FakeChat("hey you")
        self.aio = SimpleNamespace(
            chats=SimpleNamespace(create=self._create_chat),
            models=SimpleNamespace(generate_content=self._generate_content),
        )
        FakeClient.instances.append(self)

    def _create_chat(self, **kwargs):
        self.chat_kwargs = kwargs
        return self.chat

    async def _generate_content(self, **kwargs):
        self.generate_calls.append(kwargs)
        return self.response


@pytest.fixture
def fake_sdk(monkeypatch):
    FakeClient.instances = []
    monkeypatch.setattr(gemini, "types", FAKE_TYPES)
    monkeypatch.setattr(gemini, "genai", SimpleNamespace(Client=FakeClient))
    return FakeClient


def test_chat_config_blocks_nothing(fake_sdk) -> None:
    config = build_chat_config("be nice", GenerationSettings(temperature=0.7, top_p=0.9, top_k=20))
    assert config.system_instruction == "be nice"
    assert (config.temperature, config.top_p, config.top_k) == (0.7, 0.9, 20)
    assert len(config.safety_settings) == 4
    assert {setting.threshold for setting in config.safety_settings} == {"BLOCK_NONE"}


def test_create_chat_seeds_history_and_sends(fake_sdk) -> None:
    backend = GeminiTextBackend(model="text-model")
    history = [
        ConversationTurn("user", [TurnPart(text="hi")]),
        ConversationTurn("model", [TurnPart(text="hello")]),
    ]
    handle = backend.create_chat("key-1", "persona", history, None)
    client = fake_sdk.instances[0]
    assert client.api_key == "key-1"
    assert client.chat_kwargs["model"] == "text-model"
    assert [content.role for content in client.chat_kwargs["history"]] == ["user", "model"]
    assert asyncio.run(handle.send("how are you")) == "hey you"
    assert client.chat.sent == ["how are you"]


def test_send_with_attachment_puts_image_first(fake_sdk) -> None:
    handle = GeminiTextBackend().create_chat("key-1", "persona", [], None)
    data_url = "data:image/png;base64," + base64.b64encode(b"png").decode("ascii")
    asyncio.run(handle.send("look", data_url))
    message = fake_sdk.instances[0].chat.sent[0]
    assert message[0].inline_data.mime_type == "image/png"
    assert message[0].inline_data.data == b"png"
    assert message[1].text == "look"


def test_bare_base64_attachment_assumes_jpeg(fake_sdk) -> None:
    handle = GeminiTextBackend().create_chat("key-1", "persona", [], None)
    asyncio.run(handle.send("look", base64.b64encode(b"jpg").decode("ascii")))
    assert fake_sdk.instances[0].chat.sent[0][0].inline_data.mime_type == "image/jpeg"


def test_evolve_image_folds_parts(fake_sdk, monkeypatch) -> None:
    backend = GeminiTextBackend(image_model="image-model")
    client_response = SimpleNamespace(
        text=None,
        candidates=[
            SimpleNamespace(
                content=SimpleNamespace(
                    parts=[
                        SimpleNamespace(inline_data=None, text="Here you go"),
                        SimpleNamespace(inline_data=SimpleNamespace(data=b"img", mime_type="image/png"), text=None),
                    ]
                )
            )
        ],
    )
    monkeypatch.setattr(FakeClient, "response", client_response)
    result = asyncio.run(backend.evolve_image("key-1", "make it night", "data:image/png;base64,aW1n"))
    assert result.text == "Here you go"
    assert result.image == "data:image/png;base64," + base64.b64encode(b"img").decode("ascii")
    assert fake_sdk.instances[0].generate_calls[0]["model"] == "image-model"


def test_probe_sends_test_prompt(fake_sdk) -> None:
    asyncio.run(GeminiTextBackend(model="text-model").probe("key-1"))
    call = fake_sdk.instances[0].generate_calls[0]
    assert call == {"model": "text-model", "contents": "test"}


def test_missing_key_is_rejected(fake_sdk) -> None:
    with pytest.raises(RuntimeError, match="Missing API key"):
        GeminiTextBackend().create_chat("", "persona", [], None)


def test_missing_sdk(monkeypatch) -> None:
    monkeypatch.setattr(gemini, "genai", None)
    with pytest.raises(RuntimeError, match="google-genai"):
        asyncio.run(GeminiTextBackend().probe("key-1"))
