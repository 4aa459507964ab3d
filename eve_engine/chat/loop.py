"""Interactive chat loop wrapper."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from ..cli_progress import ProgressTicker
from ..engine import EveEngine
from ..models import Message
from .attachments import load_attachment, save_inline_image
from .commands import COMMANDS, Intent, parse_intent
from .context_tracker import context_usage

_NOTICE_PREFIX = {"info": "·", "success": "✓", "error": "!"}


def _print_safe(message: str) -> None:
    # Background renders can land while the prompt is showing.
    prefix = "\r\n" if getattr(sys.stdout, "isatty", lambda: False)() else ""
    print(f"{prefix}{message}")


@dataclass
class PendingInput:
    attachment: str | None = None
    force_image: bool = False

    def reset(self) -> None:
        self.attachment = None
        self.force_image = False


class ChatLoop:
    def __init__(self, engine: EveEngine, image_dir: Path | None = None) -> None:
        self.engine = engine
        self.image_dir = image_dir or engine.config.home / "images"
        self.pending = PendingInput()
        self.engine.on_notice = self._print_notice
        self.engine.on_visual = self._print_visual
        self._handlers: dict[str, Callable[[Intent], Awaitable[None]]] = {
            "help": self._handle_help,
            "set_language": self._handle_language,
            "clear_history": self._handle_clear,
            "attach": self._handle_attach,
            "imagine": self._handle_imagine,
            "list_keys": self._handle_keys,
            "add_key": self._handle_add_key,
            "test_key": self._handle_test_key,
            "use_key": self._handle_use_key,
            "set_setting": self._handle_set,
            "show_settings": self._handle_show_settings,
            "tokens": self._handle_tokens,
            "set_endpoint": self._handle_endpoint,
        }

    def run(self) -> None:
        asyncio.run(self.run_async())

    async def run_async(self) -> None:
        away = self.engine.hydrate()
        print("Eve chat started. Type /help for commands.")
        if away:
            print(f"(You were away for {away}.)")
        for message in self.engine.messages[-3:]:
            self._print_message(message)
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except (EOFError, KeyboardInterrupt):
                break
            await self.handle_line(line)
        await self.engine.wait_for_visuals()

    async def handle_line(self, line: str) -> None:
        intent = parse_intent(line)
        if intent.action == "noop":
            return
        if intent.action == "unknown":
            print(f"Unknown command: /{intent.command_args.get('command')}. Type /help for commands.")
            return
        if intent.action == "chat":
            await self._send(intent.prompt or "")
            return
        await self._handlers[intent.action](intent)

    async def _send(self, text: str) -> None:
        pending = self.pending
        if not text and not pending.attachment:
            print("Type a message first.")
            return
        ticker = ProgressTicker("Eve is typing")
        ticker.start_ticking()
        try:
            reply = await self.engine.send_message(text, pending.attachment, pending.force_image)
        except BaseException:
            ticker.stop(done=False)
            raise
        ticker.stop(done=True)
        pending.reset()
        self._print_message(reply)

    def _print_message(self, message: Message) -> None:
        speaker = "Eve" if message.role == "assistant" else "You"
        prefix = "Generation failed: " if message.is_error else ""
        print(f"{speaker}: {prefix}{message.text}")
        if message.is_image_loading:
            print("  (picturing it...)")
        if message.image and message.role == "assistant":
            self._print_image(message)

    def _print_image(self, message: Message) -> None:
        saved = save_inline_image(message.image or "", self.image_dir, message.id)
        target = str(saved) if saved else message.image
        print(f"  Image: {target}")

    def _print_visual(self, message: Message) -> None:
        if message.image:
            saved = save_inline_image(message.image, self.image_dir, message.id)
            _print_safe(f"  Image: {saved or message.image}")
        else:
            _print_safe("  (the picture didn't come through)")

    def _print_notice(self, level: str, text: str) -> None:
        _print_safe(f"{_NOTICE_PREFIX.get(level, '·')} {text}")

    async def _handle_help(self, _intent: Intent) -> None:
        for command, description in COMMANDS.items():
            print(f"  {command:<10} {description}")

    async def _handle_language(self, intent: Intent) -> None:
        language = str(intent.command_args.get("value") or "").lower()
        try:
            self.engine.change_language(language)
        except ValueError as exc:
            print(str(exc))
            return
        print(f"Language: {self.engine.state.language}")
        if len(self.engine.messages) == 1:
            self._print_message(self.engine.messages[0])

    async def _handle_clear(self, _intent: Intent) -> None:
        self.engine.clear_history()
        self.pending.reset()
        self._print_message(self.engine.messages[0])

    async def _handle_attach(self, intent: Intent) -> None:
        raw_path = intent.command_args.get("path")
        if not raw_path:
            print("/attach requires a path")
            return
        path = Path(str(raw_path)).expanduser()
        try:
            self.pending.attachment = load_attachment(path)
        except FileNotFoundError:
            print(f"Attach failed: file not found ({path})")
            return
        print(f"Attached {path}")

    async def _handle_imagine(self, intent: Intent) -> None:
        self.pending.force_image = True
        if intent.prompt:
            await self._send(intent.prompt)
            return
        print("Next message will be turned into a picture.")

    async def _handle_keys(self, _intent: Intent) -> None:
        if not self.engine.credentials:
            print("No keys configured; using GEMINI_API_KEY from the environment.")
            return
        active = self.engine.active_credential().id
        for credential in self.engine.credentials:
            marker = "*" if credential.id == active else " "
            status = self.engine.state.key_statuses.get(credential.id, "untested")
            print(f" {marker} {credential.label} ({credential.id}) [{status}]")

    async def _handle_add_key(self, intent: Intent) -> None:
        label = intent.command_args.get("label") or f"Key {len(self.engine.credentials) + 1}"
        try:
            self.engine.add_credential(label, intent.command_args.get("secret") or "")
        except ValueError as exc:
            print(str(exc))

    async def _handle_test_key(self, intent: Intent) -> None:
        ref = intent.command_args.get("value") or self.engine.active_credential().id
        try:
            await self.engine.test_credential(ref)
        except KeyError as exc:
            print(exc.args[0])

    async def _handle_use_key(self, intent: Intent) -> None:
        try:
            credential = self.engine.select_credential(intent.command_args.get("value") or "")
        except KeyError as exc:
            print(exc.args[0])
            return
        print(f"Active key: {credential.label}")

    async def _handle_set(self, intent: Intent) -> None:
        if not intent.settings_update:
            print("/set requires a name and a value")
            return
        try:
            settings = self.engine.update_settings(**intent.settings_update)
        except (KeyError, ValueError) as exc:
            print(f"Setting not changed: {exc}")
            return
        name = intent.command_args.get("name")
        print(f"{name} = {getattr(settings, name)}")

    async def _handle_show_settings(self, _intent: Intent) -> None:
        for name, value in self.engine.settings.to_dict().items():
            print(f"  {name} = {value}")

    async def _handle_tokens(self, _intent: Intent) -> None:
        usage = context_usage(self.engine.estimated_tokens())
        print(f"~{usage.used_tokens} tokens ({usage.pct:.1%} of context)")
        if usage.alert_level != "none":
            print(f"Context is over {usage.alert_level}% full; consider /clear.")

    async def _handle_endpoint(self, intent: Intent) -> None:
        self.engine.set_gradio_endpoint(intent.command_args.get("value"))
        print(f"Gradio endpoint: {self.engine.gradio_endpoint or '(not set)'}")
