from __future__ import annotations

from lingoai.app.diagnostics import is_codec_error, summarize_exception, user_message
from lingoai.audio.mic import MicPermissionError
from lingoai.audio.pcm import DecodeError, MalformedAudioError
from lingoai.service.base import MalformedResponseError, NoAudioDataError, ServiceFailure


def test_summarize_exception_picks_last_meaningful_line() -> None:
    detail = (
        "Traceback (most recent call last):\n"
        '  File "x.py", line 1, in <module>\n'
        "    boom()\n"
        "RuntimeError: failed to open stream"
    )
    assert summarize_exception(detail) == "RuntimeError: failed to open stream"


def test_summarize_exception_truncates_long_line() -> None:
    detail = "ValueError: " + ("x" * 500)
    out = summarize_exception(detail, max_len=60)
    assert out.startswith("ValueError: ")
    assert out.endswith("...")
    assert len(out) <= 60


def test_codec_errors_are_classified() -> None:
    assert is_codec_error(DecodeError("bad base64"))
    assert is_codec_error(MalformedAudioError("odd length"))
    assert not is_codec_error(ServiceFailure("down"))


def test_user_message_per_error_kind() -> None:
    assert user_message(MicPermissionError("denied")) == "Microphone access denied."
    assert user_message(NoAudioDataError("")) == "No audio data returned."
    assert user_message(MalformedAudioError("odd")) == "The translation service returned unreadable audio data."
    assert user_message(MalformedResponseError("x")) == "The translation service returned an unexpected response."
    assert user_message(ServiceFailure("rate limited")) == "rate limited"


def test_user_message_fallback() -> None:
    assert user_message(RuntimeError()) == "Translation failed. Please try again."
    assert user_message(ServiceFailure(""), fallback="Speech failed.") == "Speech failed."
