from __future__ import annotations

import json
from pathlib import Path

from lingoai.app.config import resolve_args


def test_app_resolve_args_cli_overrides_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(
        json.dumps(
            {
                "provider": "argos",
                "capture_sr": 16000,
                "debounce_ms": 500,
            }
        ),
        encoding="utf-8",
    )
    args = resolve_args(
        [
            "--config",
            str(cfg_path),
            "--provider",
            "openai",
            "--debounce-ms",
            "200",
        ]
    )
    assert args.provider == "openai"
    assert args.capture_sr == 16000
    assert args.debounce_ms == 200
    assert args.command == "interactive"


def test_app_resolve_args_translate_command(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(json.dumps({"target_lang": "de"}), encoding="utf-8")
    args = resolve_args(["--config", str(cfg_path), "--source-lang", "en", "translate", "good", "morning"])
    assert args.command == "translate"
    assert args.text == ["good", "morning"]
    assert args.source_lang == "en"
    assert args.target_lang == "de"


def test_app_resolve_args_document_output(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(json.dumps({}), encoding="utf-8")
    args = resolve_args(["--config", str(cfg_path), "document", "notes.pdf", "--output", "out.txt"])
    assert args.command == "document"
    assert args.path == "notes.pdf"
    assert args.output == "out.txt"


def test_app_resolve_args_boolean_flags(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(json.dumps({"persist": True, "debug": True}), encoding="utf-8")
    args = resolve_args(["--config", str(cfg_path), "--no-persist", "listen"])
    assert args.persist is False
    assert args.debug is True
    assert args.command == "listen"
