from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, List

import numpy as np
import pytest

from lingoai.audio.pcm import base64_to_bytes, make_pcm_blob
from lingoai.contracts import PCMBlob, TranslationRequest
from lingoai.service.argos import ArgosService
from lingoai.service.base import (
    MalformedResponseError,
    ServiceFailure,
    VoiceSessionCallbacks,
    VoiceSessionConfig,
    parse_translation_payload,
)
from lingoai.service.factory import get_service
from lingoai.service.openai_service import OpenAIService, RealtimeTranscriptionSession


# --- structured payload ---

def test_parse_translation_payload_clamps_confidence() -> None:
    res = parse_translation_payload({"translatedText": "Hola", "detectedLanguage": "en", "confidence": 1.4})
    assert res.translated_text == "Hola"
    assert res.detected_language == "en"
    assert res.confidence == 1.0


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"translatedText": "Hola", "detectedLanguage": "en"},
        {"translatedText": "Hola", "detectedLanguage": "en", "confidence": "high"},
    ],
)
def test_parse_translation_payload_rejects_malformed(payload: Any) -> None:
    with pytest.raises(MalformedResponseError):
        parse_translation_payload(payload)


# --- openai backend with a fake client ---

class _Completions:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.calls: List[dict] = []

    def create(self, **params: Any) -> Any:
        self.calls.append(params)
        return self.response


def _service_with(response: Any) -> tuple[OpenAIService, _Completions]:
    completions = _Completions(response)
    svc = OpenAIService(api_key="test-key")
    svc._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return svc, completions


def _message(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_openai_translate_parses_json_object() -> None:
    body = json.dumps({"translatedText": "Hola", "detectedLanguage": "en", "confidence": 0.98})
    svc, completions = _service_with(_message(body))
    res = svc.translate(TranslationRequest("Hello", "auto", "es"))
    assert (res.translated_text, res.detected_language, res.confidence) == ("Hola", "en", 0.98)
    call = completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert "automatically detected language" in call["messages"][0]["content"]


def test_openai_translate_rejects_non_json() -> None:
    svc, _ = _service_with(_message("Hola"))
    with pytest.raises(MalformedResponseError):
        svc.translate(TranslationRequest("Hello", "en", "es"))


class _FakeStream:
    """Context-managed chunk iterator, shaped like the SDK's Stream."""

    def __init__(self, chunks: List[Any]) -> None:
        self.chunks = chunks
        self.closed = False

    def __enter__(self) -> "_FakeStream":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.closed = True

    def __iter__(self):
        return iter(self.chunks)


def _chunk(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


def test_openai_translate_stream_yields_deltas() -> None:
    stream = _FakeStream([_chunk("Ho"), SimpleNamespace(choices=[]), _chunk(None), _chunk("la")])
    svc, completions = _service_with(stream)
    assert list(svc.translate_stream(TranslationRequest("Hello", "en", "es"))) == ["Ho", "la"]
    assert completions.calls[0]["stream"] is True
    assert stream.closed


def test_openai_translate_stream_closes_response_when_abandoned() -> None:
    stream = _FakeStream([_chunk("Ho"), _chunk("la")])
    svc, _ = _service_with(stream)
    gen = svc.translate_stream(TranslationRequest("Hello", "en", "es"))
    assert next(gen) == "Ho"
    assert not stream.closed
    gen.close()
    assert stream.closed


def test_openai_document_inlines_text_and_attaches_pdf() -> None:
    svc, completions = _service_with(_message("Hello world"))
    text_b64 = "SG9sYSBtdW5kbw=="  # "Hola mundo"
    assert svc.translate_document(text_b64, "text/plain", "auto", "en") == "Hello world"
    content = completions.calls[0]["messages"][0]["content"]
    assert isinstance(content, str)
    assert content.endswith("Hola mundo")

    svc.translate_document("JVBERi0=", "application/pdf", "es", "en")
    parts = completions.calls[1]["messages"][0]["content"]
    assert parts[0]["type"] == "file"
    assert parts[0]["file"]["file_data"] == "data:application/pdf;base64,JVBERi0="


# --- realtime transcription session ---

def _session() -> RealtimeTranscriptionSession:
    callbacks = VoiceSessionCallbacks(on_open=lambda: None, on_message=lambda m: None, on_error=lambda e: None)
    return RealtimeTranscriptionSession(
        api_key="test-key",
        model="gpt-4o-mini-transcribe",
        config=VoiceSessionConfig(),
        callbacks=callbacks,
    )


def test_realtime_parse_completed_transcript() -> None:
    session = _session()
    raw = json.dumps(
        {"type": "conversation.item.input_audio_transcription.completed", "transcript": "hello there"}
    )
    message = session.parse_event(raw)
    assert message is not None
    assert message.transcript == "hello there"
    assert message.final is True


def test_realtime_ignores_other_events() -> None:
    session = _session()
    assert session.parse_event(json.dumps({"type": "input_audio_buffer.speech_started"})) is None


def test_realtime_error_event_raises() -> None:
    session = _session()
    with pytest.raises(ServiceFailure, match="invalid api key"):
        session.parse_event(json.dumps({"type": "error", "error": {"message": "invalid api key"}}))


def test_realtime_send_requires_open_socket() -> None:
    session = _session()
    with pytest.raises(ServiceFailure):
        session.send(PCMBlob(data="", mime_type="audio/pcm;rate=16000"))


def test_realtime_send_resamples_capture_to_wire_rate() -> None:
    sent: List[str] = []
    session = _session()
    session._ws = SimpleNamespace(send=sent.append)
    session.send(make_pcm_blob(np.zeros(160, dtype=np.float32), 16000))
    event = json.loads(sent[0])
    assert event["type"] == "input_audio_buffer.append"
    assert len(base64_to_bytes(event["audio"])) == 240 * 2


def test_realtime_session_update_carries_language() -> None:
    session = _session()
    session.config = VoiceSessionConfig(language="es")
    update = json.loads(session._session_update())
    assert update["type"] == "transcription_session.update"
    assert update["session"]["input_audio_transcription"]["language"] == "es"


# --- argos backend (no model access needed for these paths) ---

def test_argos_rejects_auto_source() -> None:
    with pytest.raises(ServiceFailure):
        ArgosService().translate(TranslationRequest("Hello", "auto", "es"))


def test_argos_has_no_speech_or_voice() -> None:
    svc = ArgosService()
    with pytest.raises(ServiceFailure):
        svc.synthesize_speech("Hola")
    with pytest.raises(ServiceFailure):
        svc.open_voice_session(VoiceSessionConfig(), _session().callbacks)


def test_argos_document_rejects_pdf() -> None:
    with pytest.raises(ServiceFailure):
        ArgosService().translate_document("JVBERi0=", "application/pdf", "es", "en")


# --- factory ---

def test_factory_defaults_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINGOAI_PROVIDER", "argos")
    assert get_service().name == "argos"
    monkeypatch.delenv("LINGOAI_PROVIDER")
    assert get_service().name == "openai"


def test_factory_passes_openai_options() -> None:
    svc = get_service("openai", tts_voice="sage")
    assert isinstance(svc, OpenAIService)
    assert svc.tts_voice == "sage"


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError):
        get_service("babelfish")
