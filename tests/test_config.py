from __future__ import annotations

import os
from pathlib import Path

from eve_engine.config import (
    DEFAULT_CREDENTIAL_ID,
    EveConfig,
    default_credential,
    find_env_file,
    getenv_flag,
    load_env_file,
    parse_api_keys,
)
from eve_engine.providers.gemini import DEFAULT_TEXT_MODEL


def test_parse_api_keys_labels_and_dedup() -> None:
    creds = parse_api_keys("main=abc, backup = def ,ghi,abc,,")
    assert [cred.label for cred in creds] == ["main", "backup", "Key 3"]
    assert [cred.secret for cred in creds] == ["abc", "def", "ghi"]
    assert len({cred.id for cred in creds}) == 3
    assert parse_api_keys("main=abc")[0].id == creds[0].id


def test_parse_api_keys_empty() -> None:
    assert parse_api_keys(None) == []
    assert parse_api_keys(" , ") == []


def test_default_credential_prefers_gemini_key(monkeypatch) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "google")
    monkeypatch.setenv("GEMINI_API_KEY", "gemini")
    cred = default_credential()
    assert cred.id == DEFAULT_CREDENTIAL_ID
    assert cred.secret == "gemini"


def test_from_env(monkeypatch, tmp_path: Path) -> None:
    for name in ("EVE_TEXT_MODEL", "EVE_IMAGE_GENERATION", "EVE_GRADIO_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("EVE_API_KEYS", "a=1,b=2")
    monkeypatch.setenv("EVE_LANGUAGE", "Manglish")
    monkeypatch.setenv("EVE_HOME", str(tmp_path))
    config = EveConfig.from_env()
    assert config.text_model == DEFAULT_TEXT_MODEL
    assert [cred.label for cred in config.credentials] == ["a", "b"]
    assert config.language == "manglish"
    assert config.image_generation is True
    assert config.gradio_endpoint is None
    assert config.session_path == tmp_path / "session.json"
    assert config.events_path == tmp_path / "events.jsonl"


def test_from_env_rejects_unknown_language(monkeypatch) -> None:
    monkeypatch.setenv("EVE_LANGUAGE", "french")
    monkeypatch.setenv("EVE_IMAGE_GENERATION", "off")
    config = EveConfig.from_env()
    assert config.language == "english"
    assert config.image_generation is False


def test_getenv_flag(monkeypatch) -> None:
    monkeypatch.setenv("EVE_FLAG", "Yes")
    assert getenv_flag("EVE_FLAG")
    monkeypatch.setenv("EVE_FLAG", "off")
    assert not getenv_flag("EVE_FLAG", True)
    monkeypatch.setenv("EVE_FLAG", "maybe")
    assert getenv_flag("EVE_FLAG", True)
    monkeypatch.delenv("EVE_FLAG")
    assert getenv_flag("EVE_FLAG", True)


def test_load_env_file_respects_existing(monkeypatch, tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text(
        "# comment\nexport EVE_TEST_A='quoted'\nEVE_TEST_B=plain\nEVE_TEST_C=kept\nnot a pair\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("EVE_TEST_A", raising=False)
    monkeypatch.delenv("EVE_TEST_B", raising=False)
    monkeypatch.setenv("EVE_TEST_C", "original")
    assert load_env_file(env) == env
    assert os.environ["EVE_TEST_A"] == "quoted"
    assert os.environ["EVE_TEST_B"] == "plain"
    assert os.environ["EVE_TEST_C"] == "original"


def test_load_env_file_missing(tmp_path: Path) -> None:
    assert load_env_file(tmp_path / "missing.env") is None


def test_find_env_file_stops_at_project_root(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("EVE_HOME", str(tmp_path / "home"))
    (tmp_path / ".env").write_text("EVE_TEST_OUTSIDE=1\n", encoding="utf-8")
    project = tmp_path / "checkout"
    nested = project / "eve_engine" / "chat"
    nested.mkdir(parents=True)
    (project / "pyproject.toml").write_text('[project]\nname = "eve-engine"\n', encoding="utf-8")
    assert find_env_file(nested) is None

    (project / ".env").write_text("EVE_TEST_INSIDE=1\n", encoding="utf-8")
    assert find_env_file(nested) == (project / ".env").resolve()


def test_find_env_file_falls_back_to_eve_home(monkeypatch, tmp_path: Path) -> None:
    home = tmp_path / "home"
    home.mkdir()
    (home / ".env").write_text("GEMINI_API_KEY=x\n", encoding="utf-8")
    project = tmp_path / "checkout"
    project.mkdir()
    (project / "pyproject.toml").write_text('[project]\nname = "eve-engine"\n', encoding="utf-8")
    monkeypatch.setenv("EVE_HOME", str(home))
    assert find_env_file(project) == home / ".env"
