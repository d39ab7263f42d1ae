from __future__ import annotations

import argparse
import threading
import time
from pathlib import Path
from typing import Callable

from lingoai.app.client import TranslatorClient
from lingoai.app.config import resolve_args
from lingoai.app.logging_setup import setup_app_logger
from lingoai.app.services import build_client_services
from lingoai.app.state import TranslationStatus
from lingoai.audio.mic import SoundDeviceCapture
from lingoai.live.orchestrator import TranslationSnapshot

_DONE = (TranslationStatus.SUCCESS, TranslationStatus.ERROR)

HELP = """\
Type text and press Enter to translate it. Commands:
  :undo  :redo  :swap  :clear  :voice  :speak [source|target]
  :lang SRC TGT   :select TGT TEXT   :load PATH   :doc PATH   :help  :quit"""


def _format_result(snap: TranslationSnapshot) -> str:
    if snap.status is TranslationStatus.ERROR:
        partial = f" (partial: {snap.target_text})" if snap.target_text else ""
        return f"[error] {snap.error}{partial}"
    line = f"[{snap.source_lang}->{snap.target_lang}] {snap.target_text}"
    if snap.detected_language:
        line += f"  (detected {snap.detected_language}, {snap.confidence:.0%})"
    return line


def _streaming_printer(done: threading.Event, *, stream: bool = True) -> Callable[[TranslationSnapshot], None]:
    """Echo chunks as they arrive; with stream=False only the final line is printed."""
    printed = {"generation": 0, "chars": 0}

    def _on_update(snap: TranslationSnapshot) -> None:
        if snap.generation != printed["generation"]:
            printed["generation"] = snap.generation
            printed["chars"] = 0
        if stream and snap.status is TranslationStatus.STREAMING and len(snap.target_text) > printed["chars"]:
            print(snap.target_text[printed["chars"] :], end="", flush=True)
            printed["chars"] = len(snap.target_text)
        if snap.status in _DONE:
            if stream:
                print()
            if not stream or snap.status is TranslationStatus.ERROR or snap.detected_language:
                print(_format_result(snap))
            done.set()

    return _on_update


def _wait_for_speech(client: TranslatorClient, surface: str) -> None:
    while client.speech.is_speaking(surface):
        time.sleep(0.05)


def _run_translate(client: TranslatorClient, text: str, *, stream: bool = True) -> int:
    if not text.strip():
        print("[error] Nothing to translate.")
        return 1
    done = threading.Event()
    client.orchestrator.add_listener(_streaming_printer(done, stream=stream))
    client.type_text(text)
    done.wait()
    return 1 if client.orchestrator.snapshot().status is TranslationStatus.ERROR else 0


def _run_speak(client: TranslatorClient, text: str) -> int:
    if not client.speech.speak(text, surface="cli"):
        return 0
    _wait_for_speech(client, "cli")
    error = client.speech.last_error("cli")
    if error:
        print(f"[error] {error}")
        return 1
    return 0


def _run_document(client: TranslatorClient, path: str, output: str | None) -> int:
    saved = client.translate_document(Path(path), Path(output) if output else None)
    if saved is None:
        print(f"[error] {client.document_error}")
        return 1
    print(f"Saved translation to {saved}")
    return 0


def _run_listen(client: TranslatorClient) -> int:
    client.orchestrator.add_listener(lambda snap: print(_format_result(snap)) if snap.status in _DONE else None)
    try:
        client.voice.start()
    except PermissionError:
        print(f"[error] {client.voice.last_error}")
        return 1
    if client.voice.last_error:
        print(f"[error] {client.voice.last_error}")
        return 1
    print("Listening. Press Ctrl+C to stop.")
    try:
        while client.voice.is_active:
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        client.voice.stop()
    if client.voice.last_error:
        print(f"[error] {client.voice.last_error}")
    return 0


def _handle_command(client: TranslatorClient, line: str) -> bool:
    parts = line.split()
    cmd, rest = parts[0], parts[1:]
    if cmd == ":quit":
        return False
    if cmd == ":help":
        print(HELP)
    elif cmd == ":undo":
        if client.undo() is None:
            print("(nothing to undo)")
        else:
            print(f"source: {client.buffer.text}")
    elif cmd == ":redo":
        if client.redo() is None:
            print("(nothing to redo)")
        else:
            print(f"source: {client.buffer.text}")
    elif cmd == ":swap":
        if not client.swap():
            print("(cannot swap while the source language is auto)")
    elif cmd == ":clear":
        client.clear()
    elif cmd == ":voice":
        try:
            client.toggle_voice()
        except PermissionError:
            pass
        if client.voice.last_error:
            print(f"[error] {client.voice.last_error}")
        else:
            print(f"voice: {client.voice.state.value}")
    elif cmd == ":speak":
        surface = rest[0] if rest else "target"
        spoke = client.speak_source() if surface == "source" else client.speak_target()
        if not spoke:
            print("(nothing to speak or already speaking)")
    elif cmd == ":lang" and len(rest) == 2:
        try:
            client.set_languages(rest[0], rest[1])
        except ValueError as e:
            print(f"[error] {e}")
    elif cmd == ":load" and rest:
        if not client.load_text_file(Path(" ".join(rest))):
            print(f"[error] {client.load_error}")
    elif cmd == ":select" and len(rest) >= 2:
        print(client.translate_selection(" ".join(rest[1:]), rest[0]))
    elif cmd == ":doc" and rest:
        _run_document(client, " ".join(rest), None)
    else:
        print(HELP)
    return True


def _run_interactive(client: TranslatorClient) -> int:
    client.orchestrator.add_listener(lambda snap: print(_format_result(snap)) if snap.status in _DONE else None)
    restored = client.restore()
    if restored:
        print(f"Restored: {restored}")
    print(HELP)
    try:
        while True:
            line = input("> ")
            if line.startswith(":"):
                if not _handle_command(client, line.strip()):
                    break
                continue
            client.type_text(line)
    except (EOFError, KeyboardInterrupt):
        print()
    finally:
        client.shutdown()
    return 0


def main(argv: list[str] | None = None) -> int:
    args: argparse.Namespace = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"command": args.command, "provider": args.provider, "argv": argv or []})

    if args.list_devices:
        print(SoundDeviceCapture.list_devices())
        return 0

    services = build_client_services(args)
    client = TranslatorClient.from_args(args, services)
    try:
        if args.command == "translate":
            # One-shot runs never touch the persisted editing session.
            client.buffer.store = None
            return _run_translate(client, " ".join(args.text), stream=bool(args.print_console))
        if args.command == "speak":
            return _run_speak(client, " ".join(args.text))
        if args.command == "document":
            return _run_document(client, args.path, args.output)
        if args.command == "listen":
            client.buffer.store = None
            return _run_listen(client)
        return _run_interactive(client)
    except Exception:
        logger.exception("app_crash")
        print(f"Unexpected error. See log: {log_path}")
        return 1
    finally:
        logger.info("app_stop", extra={"command": args.command})


if __name__ == "__main__":
    raise SystemExit(main())
