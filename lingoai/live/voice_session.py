from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Protocol

import numpy as np

from lingoai.app.diagnostics import user_message
from lingoai.app.logging_setup import log_event
from lingoai.app.state import VoiceState
from lingoai.audio.mic import MicError, SoundDeviceCapture
from lingoai.audio.pcm import make_pcm_blob
from lingoai.contracts import VoiceMessage
from lingoai.service.base import (
    ServiceFailure,
    TranslationService,
    VoiceSession,
    VoiceSessionCallbacks,
    VoiceSessionConfig,
)

MAX_SEND_FAILURES = 3


class Capture(Protocol):
    def acquire(self) -> None:
        ...

    def attach(self, on_frame: Callable[[np.ndarray], None]) -> None:
        ...

    def stop(self) -> None:
        ...

    def close(self) -> None:
        ...

    def detach(self) -> None:
        ...


StateListener = Callable[[VoiceState], None]


class LiveVoiceSessionManager:
    """
    Owns one bidirectional voice session and the capture graph feeding it.

    Incoming transcript fragments go to `transcript_sink`, which is expected
    to be the source buffer's intake, so dictation flows through the same
    history and debounce rules as typing (and on into translation).

    Every start() opens a new epoch; callbacks from an older session are
    ignored. Teardown runs at most once per epoch and attempts all four
    releases even when one of them raises.
    """

    def __init__(
        self,
        service: TranslationService,
        transcript_sink: Callable[[str], None],
        *,
        capture_factory: Optional[Callable[[], Capture]] = None,
        config: VoiceSessionConfig | None = None,
        max_send_failures: int = MAX_SEND_FAILURES,
        logger: logging.Logger | None = None,
    ) -> None:
        self.service = service
        self.transcript_sink = transcript_sink
        self.config = config or VoiceSessionConfig()
        self.capture_factory = capture_factory or (
            lambda: SoundDeviceCapture(sample_rate=self.config.sample_rate)
        )
        self.max_send_failures = max(1, int(max_send_failures))
        self.logger = logger or logging.getLogger("lingoai.live.voice")
        self.last_error: Optional[str] = None

        self._lock = threading.RLock()
        self._state = VoiceState.IDLE
        self._epoch = 0
        self._released = True
        self._session: Optional[VoiceSession] = None
        self._capture: Optional[Capture] = None
        self._send_failures = 0
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    def add_state_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: VoiceState) -> None:
        if state is self._state:
            return
        self._state = state
        log_event(self.logger, logging.INFO, "voice_state", state=state.value, epoch=self._epoch)
        for listener in list(self._listeners):
            listener(state)

    # -- lifecycle -----------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            self.stop()
            self._epoch += 1
            epoch = self._epoch
            self.last_error = None

            capture = self.capture_factory()
            try:
                capture.acquire()
            except PermissionError as e:
                self.last_error = user_message(e)
                log_event(self.logger, logging.WARNING, "voice_permission_denied", epoch=epoch)
                self._set_state(VoiceState.ERROR)
                raise
            except MicError as e:
                self.last_error = user_message(e)
                self.logger.warning("voice_capture_failed", exc_info=True, extra={"epoch": epoch})
                self._set_state(VoiceState.ERROR)
                return

            self._capture = capture
            self._released = False
            self._send_failures = 0
            self._set_state(VoiceState.CONNECTING)

            callbacks = VoiceSessionCallbacks(
                on_open=lambda: self._on_open(epoch),
                on_message=lambda message: self._on_message(epoch, message),
                on_error=lambda exc: self._on_error(epoch, exc),
                on_close=lambda: self._on_close(epoch),
            )
            try:
                self._session = self.service.open_voice_session(self.config, callbacks)
            except Exception as e:
                self._fail(epoch, e)

    def stop(self) -> None:
        with self._lock:
            self._release(self._epoch)
            self._set_state(VoiceState.IDLE)

    def toggle(self) -> None:
        if self.is_active:
            self.stop()
        else:
            self.start()

    def _release(self, epoch: int) -> None:
        with self._lock:
            if epoch != self._epoch or self._released:
                return
            self._released = True
            if self._state is not VoiceState.ERROR:
                self._set_state(VoiceState.CLOSING)
            session, self._session = self._session, None
            capture, self._capture = self._capture, None

        steps: list[tuple[str, Optional[Callable[[], None]]]] = [
            ("session_close", session.close if session is not None else None),
            ("capture_stop", capture.stop if capture is not None else None),
            ("capture_close", capture.close if capture is not None else None),
            ("capture_detach", capture.detach if capture is not None else None),
        ]
        for step, fn in steps:
            if fn is None:
                continue
            try:
                fn()
            except Exception:
                self.logger.warning("voice_release_failed", exc_info=True, extra={"step": step, "epoch": epoch})
        log_event(self.logger, logging.INFO, "voice_released", epoch=epoch)

    def _fail(self, epoch: int, exc: BaseException) -> None:
        with self._lock:
            if epoch != self._epoch or self._released:
                return
            self.last_error = user_message(exc)
            self._set_state(VoiceState.ERROR)
        self._release(epoch)

    # -- session callbacks -------------------------------------------------------------

    def _on_open(self, epoch: int) -> None:
        with self._lock:
            if epoch != self._epoch or self._state is not VoiceState.CONNECTING:
                return
            capture = self._capture
            if capture is None:
                return
            try:
                capture.attach(lambda samples: self._on_frame(epoch, samples))
            except Exception as e:
                self.logger.warning("voice_capture_attach_failed", exc_info=True, extra={"epoch": epoch})
                self._fail(epoch, e)
                return
            self._set_state(VoiceState.OPEN)

    def _on_frame(self, epoch: int, samples: np.ndarray) -> None:
        session = self._session
        if epoch != self._epoch or session is None:
            return
        try:
            session.send(make_pcm_blob(samples, self.config.sample_rate))
        except Exception:
            self._send_failures += 1
            self.logger.warning(
                "voice_send_failed",
                exc_info=True,
                extra={"epoch": epoch, "consecutive": self._send_failures},
            )
            if self._send_failures >= self.max_send_failures:
                log_event(self.logger, logging.ERROR, "voice_connection_fault", epoch=epoch)
                self._fail(epoch, ServiceFailure("Voice connection lost."))
            return
        self._send_failures = 0

    def _on_message(self, epoch: int, message: VoiceMessage) -> None:
        if epoch != self._epoch:
            return
        fragment = (message.transcript or "").strip()
        if not fragment:
            return
        log_event(self.logger, logging.DEBUG, "voice_transcript", epoch=epoch, chars=len(fragment))
        self.transcript_sink(fragment)

    def _on_error(self, epoch: int, exc: BaseException) -> None:
        self.logger.error("voice_session_error", exc_info=exc, extra={"epoch": epoch})
        self._fail(epoch, exc)

    def _on_close(self, epoch: int) -> None:
        with self._lock:
            if epoch != self._epoch:
                return
            self._release(epoch)
            if self._state is not VoiceState.ERROR:
                self._set_state(VoiceState.IDLE)
