"""Slash command registry and input parsing for the chat loop."""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from typing import Any

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$")


@dataclass(frozen=True)
class CommandSpec:
    command: str
    action: str
    arg_kind: str
    help: str


COMMAND_SPECS: tuple[CommandSpec, ...] = (
    CommandSpec("help", "help", "none", "Show help"),
    CommandSpec("lang", "set_language", "raw", "Switch persona language (english|manglish)"),
    CommandSpec("clear", "clear_history", "none", "Forget the conversation and start fresh"),
    CommandSpec("attach", "attach", "path", "Attach an image to the next message"),
    CommandSpec("imagine", "imagine", "raw", "Force a picture for the next message (or this text)"),
    CommandSpec("keys", "list_keys", "none", "List configured API keys"),
    CommandSpec("addkey", "add_key", "label_secret", "Add an API key: /addkey <label> <key>"),
    CommandSpec("testkey", "test_key", "raw", "Probe an API key by label or id"),
    CommandSpec("use", "use_key", "raw", "Make a key the active one"),
    CommandSpec("set", "set_setting", "name_value", "Change a generation setting: /set <name> <value>"),
    CommandSpec("settings", "show_settings", "none", "Show generation settings"),
    CommandSpec("tokens", "tokens", "none", "Estimate context usage"),
    CommandSpec("endpoint", "set_endpoint", "raw", "Set the Gradio image endpoint"),
)

COMMAND_MAP = {spec.command: spec for spec in COMMAND_SPECS}
COMMANDS = {f"/{spec.command}": spec.help for spec in COMMAND_SPECS}


@dataclass
class Intent:
    action: str
    raw: str
    prompt: str | None = None
    settings_update: dict[str, Any] = field(default_factory=dict)
    command_args: dict[str, Any] = field(default_factory=dict)


def _split_args(arg: str) -> list[str]:
    if not arg:
        return []
    try:
        parts = shlex.split(arg)
    except ValueError:
        parts = arg.split()
    return [part for part in parts if part]


def _parse_single_path_arg(arg: str) -> str:
    # Unquoted paths with spaces are joined back together.
    parts = _split_args(arg)
    if not parts:
        return ""
    return parts[0] if len(parts) == 1 else " ".join(parts)


def parse_intent(text: str) -> Intent:
    raw = text.strip()
    if not raw:
        return Intent(action="noop", raw=text)
    match = _SLASH_PATTERN.match(raw)
    if not match:
        return Intent(action="chat", raw=text, prompt=raw)
    command = match.group(1).lower()
    arg = (match.group(2) or "").strip()
    spec = COMMAND_MAP.get(command)
    if spec is None:
        return Intent(action="unknown", raw=text, command_args={"command": command, "arg": arg})
    if spec.arg_kind == "none":
        return Intent(action=spec.action, raw=text)
    if spec.arg_kind == "path":
        return Intent(action=spec.action, raw=text, command_args={"path": _parse_single_path_arg(arg)})
    if spec.arg_kind == "label_secret":
        parts = _split_args(arg)
        label = " ".join(parts[:-1]) if len(parts) > 1 else ""
        secret = parts[-1] if parts else ""
        return Intent(action=spec.action, raw=text, command_args={"label": label, "secret": secret})
    if spec.arg_kind == "name_value":
        name, _, value = arg.partition(" ")
        name, value = name.strip(), value.strip()
        update = {name: value} if name and value else {}
        return Intent(action=spec.action, raw=text, settings_update=update, command_args={"name": name})
    if spec.action == "imagine":
        return Intent(action=spec.action, raw=text, prompt=arg or None)
    return Intent(action=spec.action, raw=text, command_args={"value": arg})
