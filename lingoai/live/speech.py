from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Protocol

from lingoai.app.diagnostics import is_codec_error, user_message
from lingoai.app.logging_setup import log_event
from lingoai.audio.pcm import PLAYBACK_SAMPLE_RATE, PCMBuffer, pcm16_to_float
from lingoai.live.debounce import Runner, daemon_runner
from lingoai.service.base import NoAudioDataError, TranslationService


class Player(Protocol):
    def play(self, buffer: PCMBuffer, on_done: Callable[[], None]) -> None:
        ...


class SpeechPlayback:
    """
    Text-to-speech with single-flight per surface: while a surface is busy,
    further speak() calls for it are rejected rather than queued.
    """

    def __init__(
        self,
        service: TranslationService,
        player: Player,
        *,
        sample_rate: int = PLAYBACK_SAMPLE_RATE,
        runner: Runner = daemon_runner,
        logger: logging.Logger | None = None,
    ) -> None:
        self.service = service
        self.player = player
        self.sample_rate = int(sample_rate)
        self.logger = logger or logging.getLogger("lingoai.live.speech")
        self._errors: Dict[str, Optional[str]] = {}
        self._runner = runner
        self._lock = threading.Lock()
        self._busy: Dict[str, bool] = {}

    def is_speaking(self, surface: str = "target") -> bool:
        with self._lock:
            return self._busy.get(surface, False)

    def last_error(self, surface: str = "target") -> Optional[str]:
        with self._lock:
            return self._errors.get(surface)

    def _release(self, surface: str, error: Optional[str] = None) -> None:
        with self._lock:
            self._busy[surface] = False
            if error is not None:
                self._errors[surface] = error

    def speak(self, text: str, surface: str = "target") -> bool:
        if not text or not text.strip():
            return False
        with self._lock:
            if self._busy.get(surface, False):
                log_event(self.logger, logging.DEBUG, "speak_rejected_busy", surface=surface)
                return False
            self._busy[surface] = True
            self._errors[surface] = None
        self._runner(lambda: self._run(text, surface), "lingoai-speech-worker")
        return True

    def _run(self, text: str, surface: str) -> None:
        try:
            audio = self.service.synthesize_speech(text)
            if not audio:
                raise NoAudioDataError("No audio data returned")
            buffer = pcm16_to_float(audio, self.sample_rate)
            log_event(
                self.logger,
                logging.INFO,
                "speech_ready",
                surface=surface,
                chars=len(text),
                seconds=round(buffer.duration, 2),
            )
            self.player.play(buffer, lambda: self._release(surface))
        except Exception as e:
            event = "codec_error" if is_codec_error(e) else "speech_failed"
            self.logger.warning(event, exc_info=True, extra={"surface": surface})
            self._release(surface, user_message(e))
