from __future__ import annotations

import threading

from lingoai.app.main import _format_result, _streaming_printer
from lingoai.app.state import TranslationStatus
from lingoai.live.orchestrator import TranslationSnapshot


def _snap(status: TranslationStatus, text: str = "", **kw) -> TranslationSnapshot:
    return TranslationSnapshot(status=status, source_lang="auto", target_lang="es", target_text=text, generation=1, **kw)


def test_format_result_success_with_detection() -> None:
    snap = _snap(TranslationStatus.SUCCESS, "Hola", detected_language="en", confidence=0.98)
    assert _format_result(snap) == "[auto->es] Hola  (detected en, 98%)"


def test_format_result_error_keeps_partial() -> None:
    snap = _snap(TranslationStatus.ERROR, "Ho", error="connection reset")
    assert _format_result(snap) == "[error] connection reset (partial: Ho)"


def test_streaming_printer_prints_only_new_text(capsys) -> None:
    done = threading.Event()
    on_update = _streaming_printer(done)
    on_update(_snap(TranslationStatus.STREAMING, ""))
    on_update(_snap(TranslationStatus.STREAMING, "Ho"))
    on_update(_snap(TranslationStatus.STREAMING, "Hola"))
    assert not done.is_set()
    on_update(_snap(TranslationStatus.SUCCESS, "Hola"))
    assert done.is_set()
    assert capsys.readouterr().out == "Hola\n"


def test_streaming_printer_quiet_mode_prints_final_line(capsys) -> None:
    done = threading.Event()
    on_update = _streaming_printer(done, stream=False)
    on_update(_snap(TranslationStatus.STREAMING, "Ho"))
    on_update(_snap(TranslationStatus.SUCCESS, "Hola"))
    assert capsys.readouterr().out == "[auto->es] Hola\n"
