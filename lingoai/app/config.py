from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir


DEFAULTS: dict[str, Any] = {
    "list_devices": False,
    "debug": False,
    "provider": "openai",
    "source_lang": "auto",
    "target_lang": "es",
    "debounce_ms": 300,
    "history_quiet_ms": 500,
    "history_limit": 50,
    "capture_sr": 16000,
    "frame_size": 4096,
    "playback_sr": 24000,
    "device": None,
    "output_device": None,
    "text_model": "gpt-4o-mini",
    "tts_model": "gpt-4o-mini-tts",
    "tts_voice": "coral",
    "transcribe_model": "gpt-4o-mini-transcribe",
    "max_send_failures": 3,
    "persist": True,
    "print_console": True,
}


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def default_asset_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "assets" / "config" / "default.json"


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("LingoAI", "LingoAI"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # utf-8-sig: files saved by Notepad start with a BOM.
    payload = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return payload


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    """Write through a sibling temp file, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    tmp.replace(path)


def _layered(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge config layers left to right; unknown keys are dropped."""
    out: dict[str, Any] = {}
    for layer in layers:
        out.update({k: v for k, v in layer.items() if k in DEFAULTS})
    return out


def load_default_config() -> dict[str, Any]:
    path = default_asset_config_path()
    shipped = _load_json_dict(path) if path.exists() else {}
    return _layered(copy.deepcopy(DEFAULTS), shipped)


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    return _layered(defaults, _load_json_dict(chosen)), chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    defaults = load_default_config()
    path = Path(config_path) if config_path else ensure_user_config_exists(defaults)
    existing = _load_json_dict(path) if path.exists() else {}
    _write_json_dict(path, _layered(defaults, existing, values))
    return path


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    path = app_paths().config_path
    if not path.exists():
        _write_json_dict(path, defaults or load_default_config())
    return path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lingoai", description="Live streaming translation client")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--debug", action="store_true", help="log debug events (stale discards, suppressions)")
    p.add_argument(
        "--provider",
        default=defaults["provider"],
        choices=["openai", "argos"],
        help="translation backend",
    )
    p.add_argument("--source-lang", default=defaults["source_lang"], help="source language code or 'auto'")
    p.add_argument("--target-lang", default=defaults["target_lang"], help="target language code")
    p.add_argument(
        "--debounce-ms",
        type=int,
        default=defaults["debounce_ms"],
        help="quiet time before a typed edit is translated",
    )
    p.add_argument(
        "--history-quiet-ms",
        type=int,
        default=defaults["history_quiet_ms"],
        help="quiet time before an edit becomes an undo step",
    )
    p.add_argument("--history-limit", type=int, default=defaults["history_limit"], help="max undo steps")
    p.add_argument("--capture-sr", type=int, default=defaults["capture_sr"], help="microphone sample rate (Hz)")
    p.add_argument("--frame-size", type=int, default=defaults["frame_size"], help="samples per capture frame")
    p.add_argument("--playback-sr", type=int, default=defaults["playback_sr"], help="speech sample rate (Hz)")
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument(
        "--output-device",
        type=int,
        default=defaults["output_device"],
        help="sounddevice output device id",
    )
    p.add_argument("--text-model", default=defaults["text_model"], help="model for translation")
    p.add_argument("--tts-model", default=defaults["tts_model"], help="model for speech synthesis")
    p.add_argument("--tts-voice", default=defaults["tts_voice"], help="speech synthesis voice")
    p.add_argument("--transcribe-model", default=defaults["transcribe_model"], help="model for live voice input")
    p.add_argument(
        "--max-send-failures",
        type=int,
        default=defaults["max_send_failures"],
        help="consecutive dropped audio frames before the voice session is closed",
    )
    p.add_argument(
        "--persist",
        action=argparse.BooleanOptionalAction,
        default=defaults["persist"],
        help="save/restore the source text between runs",
    )
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print streamed translations to the console",
    )

    sub = p.add_subparsers(dest="command")
    t = sub.add_parser("translate", help="translate text once, streaming the result")
    t.add_argument("text", nargs="+", help="text to translate")
    s = sub.add_parser("speak", help="speak text aloud")
    s.add_argument("text", nargs="+", help="text to speak")
    d = sub.add_parser("document", help="translate a text/markdown/PDF document")
    d.add_argument("path", help="document path")
    d.add_argument("--output", default=None, help="output path (default: translated_<name>.txt)")
    sub.add_parser("listen", help="dictate with the microphone and translate live")
    sub.add_parser("interactive", help="line-oriented editing session (default)")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("debug"):
        args.debug = True
    if not args.command:
        args.command = "interactive"
    return args
