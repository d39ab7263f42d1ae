from __future__ import annotations

import json
from pathlib import Path

from lingoai.app import config as app_config


def test_load_default_config_contains_expected_keys() -> None:
    cfg = app_config.load_default_config()
    assert cfg["provider"] in {"openai", "argos"}
    assert cfg["debounce_ms"] == 300
    assert cfg["history_limit"] == 50
    assert cfg["playback_sr"] == 24000


def test_resolve_defaults_uses_explicit_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "explicit.json"
    cfg_path.write_text(json.dumps({"target_lang": "fr", "debounce_ms": 150}), encoding="utf-8")
    defaults, used = app_config.resolve_defaults(str(cfg_path))
    assert used == cfg_path
    assert defaults["target_lang"] == "fr"
    assert defaults["debounce_ms"] == 150
    assert defaults["source_lang"] == "auto"


def test_ensure_user_config_exists_creates_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    created = app_config.ensure_user_config_exists({"provider": "argos", "target_lang": "de"})
    assert created.exists()
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded["provider"] == "argos"
    assert loaded["target_lang"] == "de"


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"capture_sr": 48000, "provider": "argos", "unexpected": 1}),
        encoding="utf-8",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["capture_sr"] == 48000
    assert loaded["provider"] == "argos"
    assert "unexpected" not in loaded


def test_load_user_config_accepts_bom(tmp_path: Path) -> None:
    cfg_path = tmp_path / "bom.json"
    cfg_path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"tts_voice": "sage"}).encode("utf-8"))
    loaded, _ = app_config.load_user_config(str(cfg_path))
    assert loaded["tts_voice"] == "sage"


def test_save_user_config_merges_and_filters_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"capture_sr": 16000, "provider": "openai", "debug": False}),
        encoding="utf-8",
    )
    saved = app_config.save_user_config(
        {"provider": "argos", "debounce_ms": 250, "junk": "x"},
        config_path=str(cfg_path),
    )
    assert saved == cfg_path
    loaded = json.loads(cfg_path.read_text(encoding="utf-8"))
    assert loaded["capture_sr"] == 16000
    assert loaded["provider"] == "argos"
    assert loaded["debounce_ms"] == 250
    assert "junk" not in loaded
