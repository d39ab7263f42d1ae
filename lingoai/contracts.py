from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

AUTO = "auto"


@dataclass(frozen=True)
class TranslationRequest:
    source_text: str
    source_lang: str = AUTO
    target_lang: str = "es"

    def __post_init__(self) -> None:
        if not self.source_text.strip():
            raise ValueError("source_text must be non-empty")


@dataclass(frozen=True)
class TranslationResult:
    translated_text: str
    detected_language: str
    confidence: float  # 0..1


@dataclass(frozen=True)
class PCMBlob:
    """
    Wire unit for the live voice session.
    data: base64 of little-endian signed 16-bit mono PCM.
    mime_type: e.g. "audio/pcm;rate=16000".
    """
    data: str
    mime_type: str


@dataclass(frozen=True)
class VoiceMessage:
    transcript: Optional[str] = None
    final: bool = True
    raw: Any = None


class TextOrigin(str, Enum):
    USER_EDIT = "user_edit"
    HISTORY_REPLAY = "history_replay"
    VOICE_TRANSCRIPT = "voice_transcript"
