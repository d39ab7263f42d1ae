from __future__ import annotations

from enum import Enum


class TranslationStatus(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    SUCCESS = "success"
    ERROR = "error"


class VoiceState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self in (VoiceState.CONNECTING, VoiceState.OPEN)
