from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from lingoai.audio.pcm import CAPTURE_SAMPLE_RATE
from lingoai.contracts import PCMBlob, TranslationRequest, TranslationResult, VoiceMessage


class ServiceFailure(RuntimeError):
    pass


class MalformedResponseError(ServiceFailure):
    pass


class NoAudioDataError(ServiceFailure):
    pass


@dataclass(frozen=True)
class VoiceSessionConfig:
    sample_rate: int = CAPTURE_SAMPLE_RATE
    language: Optional[str] = None
    instructions: str = "Transcribe user speech exactly as heard. Do not generate responses, just transcribe."


@dataclass
class VoiceSessionCallbacks:
    on_open: Callable[[], None]
    on_message: Callable[[VoiceMessage], None]
    on_error: Callable[[BaseException], None]
    on_close: Callable[[], None] = field(default=lambda: None)


class VoiceSession(ABC):
    @abstractmethod
    def send(self, blob: PCMBlob) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class TranslationService(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def translate(self, req: TranslationRequest) -> TranslationResult: ...

    @abstractmethod
    def translate_stream(self, req: TranslationRequest) -> Iterator[str]: ...

    @abstractmethod
    def translate_document(
        self,
        base64_content: str,
        mime_type: str,
        source_lang: str,
        target_lang: str,
    ) -> str: ...

    @abstractmethod
    def synthesize_speech(self, text: str) -> bytes: ...

    @abstractmethod
    def open_voice_session(
        self,
        config: VoiceSessionConfig,
        callbacks: VoiceSessionCallbacks,
    ) -> VoiceSession: ...


def parse_translation_payload(payload: object) -> TranslationResult:
    """Validate a structured translate response decoded from JSON."""
    if not isinstance(payload, dict):
        raise MalformedResponseError("structured translation response is not an object")
    missing = [k for k in ("translatedText", "detectedLanguage", "confidence") if k not in payload]
    if missing:
        raise MalformedResponseError(f"structured translation response missing: {', '.join(missing)}")
    try:
        confidence = float(payload["confidence"])
    except (TypeError, ValueError) as e:
        raise MalformedResponseError("confidence is not a number") from e
    return TranslationResult(
        translated_text=str(payload["translatedText"]),
        detected_language=str(payload["detectedLanguage"]),
        confidence=min(1.0, max(0.0, confidence)),
    )
