from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from lingoai.audio.mic import MicError
from lingoai.audio.pcm import PCMBuffer


class PlaybackError(MicError):
    pass


class SoundDevicePlayer:
    """Plays decoded PCM buffers on an output device on a background thread."""

    def __init__(self, *, device: Optional[int] = None, logger: logging.Logger | None = None) -> None:
        self.device = device
        self.logger = logger or logging.getLogger("lingoai.audio.playback")

    def play(self, buffer: PCMBuffer, on_done: Callable[[], None]) -> None:
        try:
            import sounddevice as sd
        except ImportError as e:
            raise PlaybackError(
                "sounddevice is not installed. Install with: python -m pip install sounddevice"
            ) from e

        def _run() -> None:
            try:
                sd.play(buffer.samples, samplerate=buffer.sample_rate, device=self.device, blocking=True)
            except Exception:
                self.logger.exception("playback_failed")
            finally:
                on_done()

        threading.Thread(target=_run, name="lingoai-playback", daemon=True).start()
