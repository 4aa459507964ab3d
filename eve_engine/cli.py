"""Eve CLI entrypoints."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path

from .chat.loop import ChatLoop
from .config import EveConfig, load_env_file
from .engine import EveEngine
from .models import LANGUAGES
from .store import SessionStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eve", description="Eve conversational companion")
    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Interactive chat loop")
    chat.add_argument("--session", help="Path to the session JSON file")
    chat.add_argument("--events", help="Path to events.jsonl")
    chat.add_argument("--language", choices=LANGUAGES)
    chat.add_argument("--gradio", help="Gradio image endpoint")
    return parser


def _handle_chat(args: argparse.Namespace) -> int:
    config = EveConfig.from_env()
    if args.language:
        config = replace(config, language=args.language)
    if args.gradio:
        config = replace(config, gradio_endpoint=args.gradio)
    session_path = Path(args.session) if args.session else config.session_path
    events_path = Path(args.events) if args.events else config.events_path
    engine = EveEngine(config, events_path, store=SessionStore(session_path))
    ChatLoop(engine).run()
    return 0


def main() -> None:
    load_env_file()
    parser = _build_parser()
    args = parser.parse_args()
    if args.command == "chat":
        raise SystemExit(_handle_chat(args))
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
