from __future__ import annotations

from lingoai.audio.mic import MicError, MicPermissionError
from lingoai.audio.pcm import DecodeError, MalformedAudioError
from lingoai.service.base import MalformedResponseError, NoAudioDataError, ServiceFailure


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown runtime error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown runtime error."
    for ln in reversed(lines):
        if ln.startswith("File "):
            continue
        if ln.startswith("^"):
            continue
        if ln.startswith("Traceback "):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def is_codec_error(exc: BaseException) -> bool:
    return isinstance(exc, (DecodeError, MalformedAudioError))


def user_message(exc: BaseException, *, fallback: str = "Translation failed. Please try again.") -> str:
    """Human-readable status line for an error caught at a component boundary."""
    if isinstance(exc, MicPermissionError):
        return "Microphone access denied."
    if isinstance(exc, MicError):
        return summarize_exception(str(exc)) if str(exc) else "Microphone failed to start."
    if isinstance(exc, NoAudioDataError):
        return "No audio data returned."
    if is_codec_error(exc):
        # Codec failures mean the service sent something we cannot read.
        return "The translation service returned unreadable audio data."
    if isinstance(exc, MalformedResponseError):
        return "The translation service returned an unexpected response."
    if isinstance(exc, ServiceFailure):
        return summarize_exception(str(exc)) if str(exc) else fallback
    detail = str(exc).strip()
    if detail:
        return summarize_exception(detail)
    return fallback
