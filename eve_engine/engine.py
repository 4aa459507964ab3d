"""Core Eve orchestration."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .chat.context_tracker import estimate_tokens
from .chat.directives import SCENE_TURN_THRESHOLD, parse_reply
from .chat.persona import FRESH_START_TEXT, LANGUAGE_RESET_TEXT, WELCOME_TEXT, format_away_duration
from .config import EveConfig, credential_id, default_credential
from .errors import EXHAUSTED_USER_TEXT, classify
from .events import EventWriter
from .models import (
    LANGUAGES,
    Credential,
    GenerationSettings,
    Message,
    assistant_message,
    user_message,
)
from .providers import default_backends
from .providers.base import ImageBackend, TextBackend
from .rotation import Attempt, DispatchOutcome, dispatch, resolve_start_index
from .session import SessionManager, SessionState
from .store import SessionStore, StoredSession
from .utils import now_ms
from .visual.pipeline import VisualPatch, VisualPipeline, apply_visual_patch, build_visual_patch

EVOLVED_FALLBACK_TEXT = "I've evolved the visual."
VISUALIZED_TEXT = "Here is what I visualized."

NoticeCallback = Callable[[str, str], None]
VisualCallback = Callable[[Message], None]


@dataclass
class TurnReply:
    text: str
    image: str | None = None
    visual_prompt: str | None = None
    visual_type: str = "scene"
    enhanced_prompt: str | None = None


class EveEngine:
    def __init__(
        self,
        config: EveConfig,
        events_path: Path | None = None,
        text_backend: TextBackend | None = None,
        image_backend: ImageBackend | None = None,
        store: SessionStore | None = None,
        on_notice: NoticeCallback | None = None,
        on_visual: VisualCallback | None = None,
    ) -> None:
        self.config = config
        self.session_id = str(uuid.uuid4())
        self.events = EventWriter(events_path or config.events_path, self.session_id)
        if text_backend is None or image_backend is None:
            default_text, default_image = default_backends(config.text_model, config.image_model)
            text_backend = text_backend or default_text
            image_backend = image_backend or default_image
        self.text_backend = text_backend
        self.image_backend = image_backend
        self.sessions = SessionManager(self.text_backend, self.events)
        self.visuals = VisualPipeline(self.text_backend, self.image_backend, self.events)
        self.store = store
        self.on_notice = on_notice
        self.on_visual = on_visual
        self.credentials: list[Credential] = list(config.credentials)
        self.gradio_endpoint = config.gradio_endpoint
        self.settings = GenerationSettings(ai_image_generation=config.image_generation)
        self.messages: list[Message] = []
        self.state = SessionState(
            language=config.language,
            active_credential_id=self.credentials[0].id if self.credentials else None,
        )
        self._visual_tasks: set[asyncio.Task[None]] = set()
        self.events.emit(
            "session_started",
            language=self.state.language,
            credential_count=len(self.credentials),
            gradio_configured=bool(self.gradio_endpoint),
            text_model=config.text_model,
        )

    # -- credentials -------------------------------------------------------

    def credential_pool(self) -> list[Credential]:
        return list(self.credentials) if self.credentials else [default_credential()]

    def active_credential(self) -> Credential:
        pool = self.credential_pool()
        return pool[resolve_start_index(pool, self.state.active_credential_id)]

    def find_credential(self, ref: str) -> Credential | None:
        for credential in self.credential_pool():
            if credential.id == ref or credential.label == ref:
                return credential
        return None

    def add_credential(self, label: str, secret: str) -> Credential:
        label, secret = label.strip(), secret.strip()
        if not label or not secret:
            raise ValueError("A key needs both a label and a value.")
        credential = Credential(id=credential_id(secret), label=label, secret=secret)
        if any(existing.id == credential.id for existing in self.credentials):
            raise ValueError(f"Key already configured: {label}")
        self.credentials.append(credential)
        self.state.key_statuses[credential.id] = "untested"
        if len(self.credentials) == 1:
            self.state.active_credential_id = credential.id
        self.events.emit("credential_added", credential_label=credential.label)
        self._notice("success", "API Key added. Don't forget to test it!")
        self._persist()
        return credential

    def select_credential(self, ref: str) -> Credential:
        credential = self.find_credential(ref)
        if credential is None:
            raise KeyError(f"Unknown key: {ref}")
        self.state.active_credential_id = credential.id
        self._persist()
        return credential

    async def test_credential(self, ref: str) -> str:
        credential = self.find_credential(ref)
        if credential is None:
            raise KeyError(f"Unknown key: {ref}")
        self.state.key_statuses[credential.id] = "testing"
        self._notice("info", f"Testing key: {credential.label}...")
        try:
            await self.text_backend.probe(credential.secret)
        except Exception as exc:
            status = "invalid"
            self.events.emit("credential_tested", credential_label=credential.label, status=status, error=str(exc))
            self._notice("error", f'Key "{credential.label}" failed. Check the key and project settings.')
        else:
            status = "valid"
            self.events.emit("credential_tested", credential_label=credential.label, status=status)
            self._notice("success", f'Key "{credential.label}" is valid!')
        self.state.key_statuses[credential.id] = status
        return status

    def _on_credential_switch(self, previous: Credential, nxt: Credential) -> None:
        self.state.active_credential_id = nxt.id
        self.events.emit(
            "credential_switched",
            from_label=previous.label,
            to_label=nxt.label,
            reason="quota_exceeded",
        )
        self._notice("info", f"Quota exceeded. Trying key: {nxt.label}")

    # -- session lifecycle -------------------------------------------------

    def hydrate(self) -> str | None:
        """Restore the stored conversation and open a session; return the away duration, if any."""
        stored = self.store.load() if self.store else StoredSession()
        if stored.language in LANGUAGES:
            self.state.language = stored.language
        if stored.active_credential_id and self.find_credential(stored.active_credential_id):
            self.state.active_credential_id = stored.active_credential_id
        if not self.gradio_endpoint and stored.gradio_endpoint:
            self.gradio_endpoint = stored.gradio_endpoint
        if stored.settings is not None:
            self.settings = stored.settings
        away: str | None = None
        if stored.messages:
            self.messages = stored.messages
            if stored.last_updated:
                away = format_away_duration((now_ms() - stored.last_updated) / 1000)
            self._start_session(self.messages, away)
        else:
            self.messages = [assistant_message(WELCOME_TEXT[self.state.language])]
            self._start_session([])
        return away

    def _start_session(self, history: list[Message], away_duration: str | None = None) -> None:
        credential = self.active_credential()
        try:
            self.sessions.ensure_session(
                self.state,
                credential,
                self.state.language,
                history,
                self.settings,
                away_duration,
            )
        except Exception as exc:
            self.state.invalidate()
            self.events.emit("session_init_failed", credential_label=credential.label, error=classify(exc).message)

    def change_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        if language == self.state.language:
            return
        self.state.language = language
        if len(self.messages) <= 1:
            self.messages = [assistant_message(LANGUAGE_RESET_TEXT[language])]
            self._start_session([])
        else:
            self._start_session(self.messages)
            self._notice("success", f"Persona switched to {language.capitalize()}.")
        self.state.reset_visuals()
        self.events.emit("language_changed", language=language, messages=len(self.messages))
        self._persist()

    def clear_history(self) -> None:
        self.messages = [assistant_message(FRESH_START_TEXT[self.state.language])]
        self.state.turn_counter = SCENE_TURN_THRESHOLD
        self.state.reset_visuals()
        self._start_session([])
        if self.store:
            self.store.clear()
        self.events.emit("history_cleared")
        self._notice("success", "Memory cleared. Fresh start!")

    def update_settings(self, **changes: Any) -> GenerationSettings:
        self.settings = self.settings.updated(**changes)
        self._persist()
        return self.settings

    def set_gradio_endpoint(self, endpoint: str | None) -> None:
        self.gradio_endpoint = (endpoint or "").strip() or None
        self._persist()
        self._notice("success", "Gradio endpoint updated")

    def estimated_tokens(self) -> int:
        if len(self.messages) <= 1:
            return 0
        return estimate_tokens(message.text for message in self.messages)

    # -- turns -------------------------------------------------------------

    async def send_message(self, text: str, attachment: str | None = None, force_image: bool = False) -> Message:
        """Run one user turn and return the assistant message appended for it.

        Backend failures never escape; they come back as error-flagged messages.
        """
        if not (text or "").strip() and not attachment:
            raise ValueError("Nothing to send.")
        user = user_message(text, attachment)
        self.messages.append(user)
        history = list(self.messages)

        async def send(credential: Credential) -> Attempt[TurnReply]:
            return await self._send_once(credential, user, history, force_image)

        outcome = await dispatch(
            send,
            self.credential_pool(),
            self.state.active_credential_id,
            on_switch=self._on_credential_switch,
        )
        reply = self._finish_turn(outcome)
        self._persist()
        return reply

    async def _send_once(
        self,
        credential: Credential,
        user: Message,
        history: list[Message],
        force_image: bool,
    ) -> Attempt[TurnReply]:
        try:
            if self.sessions.needs_reinit(self.state, credential, self.state.language):
                self.sessions.ensure_session(self.state, credential, self.state.language, history, self.settings)
            if user.image and force_image:
                evolved = await self.text_backend.evolve_image(credential.secret, user.text, user.image)
                self.state.turn_counter = 0
                return Attempt(TurnReply(text=evolved.text or EVOLVED_FALLBACK_TEXT, image=evolved.image))
            if force_image:
                result = await self.visuals.render(
                    user.text,
                    "selfie",
                    self.state.visual_memory,
                    self.settings,
                    credential,
                    self.gradio_endpoint,
                )
                self.state.turn_counter = 0
                return Attempt(
                    TurnReply(text=VISUALIZED_TEXT, image=result.image, enhanced_prompt=result.enhanced_prompt)
                )
            raw = await self.state.handle.send(user.text, user.image)
            parsed = parse_reply(raw, self.settings, user.text, self.state.turn_counter, self.gradio_endpoint)
            self.state.turn_counter = parsed.turn_counter
            return Attempt(
                TurnReply(
                    text=parsed.cleaned_text,
                    visual_prompt=parsed.visual_prompt,
                    visual_type=parsed.visual_type,
                )
            )
        except Exception as exc:
            classified = classify(exc)
            self.state.invalidate()
            self.events.emit(
                "turn_failed",
                credential_label=credential.label,
                error_kind=classified.kind.value,
                error=classified.message,
            )
            return Attempt(error=classified)

    def _finish_turn(self, outcome: DispatchOutcome[TurnReply]) -> Message:
        attempt = outcome.attempt
        if outcome.exhausted:
            reply = assistant_message(EXHAUSTED_USER_TEXT, is_error=True)
            self.events.emit("credentials_exhausted", attempts=outcome.attempts)
            self.messages.append(reply)
            return reply
        if not attempt.ok:
            reply = assistant_message(attempt.error.user_text, is_error=True)
            self.messages.append(reply)
            return reply
        turn = attempt.value
        reply = assistant_message(turn.text)
        reply.image = turn.image
        reply.is_image_loading = bool(turn.visual_prompt)
        if turn.enhanced_prompt:
            self.state.visual_memory = turn.enhanced_prompt
        self.messages.append(reply)
        self.events.emit(
            "turn_completed",
            credential_label=outcome.credential.label,
            attempts=outcome.attempts,
            visual_type=turn.visual_type if turn.visual_prompt else None,
            turn_counter=self.state.turn_counter,
        )
        if turn.visual_prompt:
            self._spawn_visual(reply.id, turn.visual_prompt, turn.visual_type)
        return reply

    # -- background visuals ------------------------------------------------

    def _spawn_visual(self, message_id: str, prompt: str, visual_type: str) -> None:
        credential = self.active_credential()
        prior_memory = self.state.visual_memory
        self.events.emit("visual_requested", message_id=message_id, visual_type=visual_type, prompt=prompt)
        task = asyncio.create_task(self._run_visual(message_id, prompt, visual_type, prior_memory, credential))
        self._visual_tasks.add(task)
        task.add_done_callback(self._visual_tasks.discard)

    async def _run_visual(
        self,
        message_id: str,
        prompt: str,
        visual_type: str,
        prior_memory: str,
        credential: Credential,
    ) -> None:
        try:
            outcome: Any = await self.visuals.render(
                prompt,
                visual_type,
                prior_memory,
                self.settings,
                credential,
                self.gradio_endpoint,
            )
        except Exception as exc:
            outcome = exc
        self.apply_visual_patch(build_visual_patch(message_id, outcome))

    def apply_visual_patch(self, patch: VisualPatch) -> bool:
        applied = apply_visual_patch(self.messages, patch)
        # A render whose message is gone leaves visual memory alone.
        if patch.error is None and applied and patch.enhanced_prompt:
            self.state.visual_memory = patch.enhanced_prompt
        if patch.error is None:
            self.events.emit("visual_completed", message_id=patch.message_id, applied=applied)
        else:
            self.events.emit("visual_failed", message_id=patch.message_id, applied=applied, error=patch.error)
        if applied:
            self._persist()
            if self.on_visual is not None:
                message = self.find_message(patch.message_id)
                if message is not None:
                    self.on_visual(message)
        return applied

    def find_message(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    async def wait_for_visuals(self) -> None:
        if self._visual_tasks:
            await asyncio.gather(*list(self._visual_tasks), return_exceptions=True)

    # -- plumbing ----------------------------------------------------------

    def _notice(self, level: str, text: str) -> None:
        self.events.emit("notice", level=level, text=text)
        if self.on_notice is not None:
            self.on_notice(level, text)

    def _persist(self) -> None:
        if self.store is None:
            return
        self.store.save(
            StoredSession(
                messages=self.messages,
                language=self.state.language,
                active_credential_id=self.state.active_credential_id,
                gradio_endpoint=self.gradio_endpoint,
                settings=self.settings,
            )
        )
