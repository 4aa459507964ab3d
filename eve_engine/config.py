"""Environment-driven engine configuration."""

from __future__ import annotations

import hashlib
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .models import LANGUAGES, Credential
from .providers.gemini import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL

DEFAULT_CREDENTIAL_ID = "default"
PROJECT_NAME = "eve-engine"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def getenv_flag(key: str, default: bool = False) -> bool:
    raw = (os.getenv(key) or "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[7:].strip()
    key, sep, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key:
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return key, value


def _is_project_root(directory: Path) -> bool:
    pyproject = directory / "pyproject.toml"
    if not pyproject.is_file():
        return False
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return data.get("project", {}).get("name") == PROJECT_NAME


def find_env_file(start: Path | None = None) -> Path | None:
    """Nearest `.env` from `start` upwards, not searching above an eve-engine checkout.

    Falls back to `$EVE_HOME/.env` (default `~/.eve/.env`) so an installed
    `eve` picks up keys from its home directory.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
        if _is_project_root(directory):
            break
    home = os.getenv("EVE_HOME")
    fallback = (Path(home).expanduser() if home else Path.home() / ".eve") / ".env"
    return fallback if fallback.is_file() else None


def load_env_file(path: Path | None = None, override: bool = False) -> Path | None:
    """Export `KEY=value` lines into the environment; returns the file used."""
    env_path = path or find_env_file()
    if env_path is None or not env_path.is_file():
        return None
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_env_line(raw_line)
        if parsed is None:
            continue
        key, value = parsed
        if override or key not in os.environ:
            os.environ[key] = value
    return env_path


def credential_id(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:12]


def parse_api_keys(raw: str | None) -> list[Credential]:
    """Parse `label=secret,label2=secret2` (labels optional) into ordered credentials."""
    credentials: list[Credential] = []
    seen: set[str] = set()
    for idx, chunk in enumerate((raw or "").split(","), start=1):
        entry = chunk.strip()
        if not entry:
            continue
        if "=" in entry:
            label, secret = (part.strip() for part in entry.split("=", 1))
        else:
            label, secret = f"Key {idx}", entry
        if not secret or secret in seen:
            continue
        seen.add(secret)
        credentials.append(Credential(id=credential_id(secret), label=label or f"Key {idx}", secret=secret))
    return credentials


def default_credential() -> Credential:
    secret = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or ""
    return Credential(id=DEFAULT_CREDENTIAL_ID, label="Default", secret=secret)


@dataclass
class EveConfig:
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    gradio_endpoint: str | None = None
    credentials: list[Credential] = field(default_factory=list)
    language: str = "english"
    image_generation: bool = True
    home: Path = field(default_factory=lambda: Path.home() / ".eve")

    @property
    def session_path(self) -> Path:
        return self.home / "session.json"

    @property
    def events_path(self) -> Path:
        return self.home / "events.jsonl"

    @classmethod
    def from_env(cls) -> "EveConfig":
        language = (os.getenv("EVE_LANGUAGE") or "english").strip().lower()
        if language not in LANGUAGES:
            language = "english"
        home = os.getenv("EVE_HOME")
        return cls(
            text_model=str(os.getenv("EVE_TEXT_MODEL") or "").strip() or DEFAULT_TEXT_MODEL,
            image_model=str(os.getenv("EVE_IMAGE_MODEL") or "").strip() or DEFAULT_IMAGE_MODEL,
            gradio_endpoint=str(os.getenv("EVE_GRADIO_ENDPOINT") or "").strip() or None,
            credentials=parse_api_keys(os.getenv("EVE_API_KEYS")),
            language=language,
            image_generation=getenv_flag("EVE_IMAGE_GENERATION", True),
            home=Path(home).expanduser() if home else Path.home() / ".eve",
        )
