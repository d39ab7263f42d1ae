from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import numpy as np

from lingoai.audio.pcm import CAPTURE_SAMPLE_RATE

FrameCallback = Callable[[np.ndarray], None]

_DENIED_MARKERS = ("permission", "denied", "not allowed", "not authorized")


class MicError(RuntimeError):
    pass


class MicPermissionError(MicError, PermissionError):
    pass


def _import_sounddevice():
    try:
        import sounddevice as sd
    except ImportError as e:
        raise MicError(
            "sounddevice is not installed. Install with: python -m pip install sounddevice"
        ) from e
    return sd


class SoundDeviceCapture:
    """
    Microphone capture graph using the `sounddevice` package (PortAudio).

    acquire() opens the device, attach() starts delivering fixed-size mono
    float32 frames to a callback on a reader thread. Teardown is split into
    stop() / close() / detach() so a session can release every piece even
    when one of them fails.
    """

    def __init__(
        self,
        *,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
        frame_size: int = 4096,
        device: Optional[int] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if frame_size <= 0:
            raise ValueError("frame_size must be > 0")
        self.sample_rate = int(sample_rate)
        self.frame_size = int(frame_size)
        self.device = device
        self.logger = logger or logging.getLogger("lingoai.audio.mic")
        self._stream = None
        self._reader: threading.Thread | None = None
        self._on_frame: FrameCallback | None = None
        self._stopped = threading.Event()

    @staticmethod
    def list_devices() -> str:
        sd = _import_sounddevice()
        return str(sd.query_devices())

    def acquire(self) -> None:
        sd = _import_sounddevice()
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.frame_size,
                device=self.device,
            )
        except PermissionError as e:
            raise MicPermissionError("Microphone access denied.") from e
        except Exception as e:
            detail = str(e).lower()
            if any(marker in detail for marker in _DENIED_MARKERS):
                raise MicPermissionError("Microphone access denied.") from e
            raise MicError(
                "Failed to open microphone stream. "
                "Try --list-devices and select a device id with --device."
            ) from e
        self._stream = stream
        self._stopped.clear()

    def attach(self, on_frame: FrameCallback) -> None:
        if self._stream is None:
            raise MicError("capture device not acquired")
        self._on_frame = on_frame
        self._stream.start()
        self._reader = threading.Thread(
            target=self._read_loop,
            name="lingoai-capture-reader",
            daemon=True,
        )
        self._reader.start()

    def _read_loop(self) -> None:
        stream = self._stream
        while stream is not None and not self._stopped.is_set():
            try:
                data, overflowed = stream.read(self.frame_size)
            except Exception:
                if not self._stopped.is_set():
                    self.logger.exception("capture_read_failed")
                return
            if overflowed:
                # PortAudio dropped input; keep going.
                self.logger.debug("capture_overflow")
            callback = self._on_frame
            if callback is None:
                return
            callback(np.array(data[:, 0], dtype=np.float32))

    def stop(self) -> None:
        self._stopped.set()
        if self._stream is not None:
            self._stream.stop()

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()

    def detach(self) -> None:
        self._on_frame = None
        reader, self._reader = self._reader, None
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)
