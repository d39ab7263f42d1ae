from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from lingoai.app.diagnostics import is_codec_error, user_message
from lingoai.app.logging_setup import log_event
from lingoai.app.state import TranslationStatus
from lingoai.contracts import AUTO, TextOrigin, TranslationRequest
from lingoai.live.cancellation import StreamGeneration
from lingoai.live.debounce import Debouncer, Runner, TimerFactory, daemon_runner, daemon_timer
from lingoai.service.base import MalformedResponseError, TranslationService

DEBOUNCE_SEC = 0.3

_IN_FLIGHT = (TranslationStatus.DEBOUNCING, TranslationStatus.STREAMING, TranslationStatus.FINALIZING)


@dataclass(frozen=True)
class TranslationSnapshot:
    status: TranslationStatus
    source_lang: str
    target_lang: str
    target_text: str = ""
    detected_language: str = ""
    confidence: float = 0.0
    error: Optional[str] = None
    generation: int = 0


SnapshotListener = Callable[[TranslationSnapshot], None]


class TranslationOrchestrator:
    """
    Debounced, generation-tagged streaming translation.

    Each debounce expiry takes a new generation from the StreamGeneration
    token and starts one worker. A worker only mutates display state while
    its generation is current; checks and writes happen under one lock so
    a stale worker can never write after a newer cycle has started.
    Listeners are called under that lock, in mutation order, and must not block.
    """

    def __init__(
        self,
        service: TranslationService,
        *,
        source_lang: str = AUTO,
        target_lang: str = "es",
        debounce_sec: float = DEBOUNCE_SEC,
        timer_factory: TimerFactory = daemon_timer,
        runner: Runner = daemon_runner,
        voice_active: Optional[Callable[[], bool]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.service = service
        self.generation = StreamGeneration()
        self.voice_active: Callable[[], bool] = voice_active or (lambda: False)
        self.logger = logger or logging.getLogger("lingoai.live.orchestrator")
        self._runner = runner
        self._debouncer = Debouncer(debounce_sec, timer_factory=timer_factory)
        self._lock = threading.RLock()
        self._listeners: List[SnapshotListener] = []

        self._status = TranslationStatus.IDLE
        self._source_lang = source_lang
        self._target_lang = target_lang
        self._source_text = ""
        self._target_text = ""
        self._detected_language = ""
        self._confidence = 0.0
        self._error: Optional[str] = None

    # -- observation -------------------------------------------------------

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> TranslationSnapshot:
        with self._lock:
            return TranslationSnapshot(
                status=self._status,
                source_lang=self._source_lang,
                target_lang=self._target_lang,
                target_text=self._target_text,
                detected_language=self._detected_language,
                confidence=self._confidence,
                error=self._error,
                generation=self.generation.current,
            )

    def _publish(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _reset_output(self) -> None:
        self._target_text = ""
        self._detected_language = ""
        self._confidence = 0.0
        self._error = None

    # -- input ---------------------------------------------------------------

    def on_text_changed(self, text: str, origin: TextOrigin = TextOrigin.USER_EDIT) -> None:
        with self._lock:
            self._source_text = text
            if not text.strip():
                self._debouncer.cancel()
                self.generation.next()
                self._reset_output()
                self._status = TranslationStatus.IDLE
                self._publish()
                return
            if self.voice_active() and origin is not TextOrigin.VOICE_TRANSCRIPT:
                log_event(self.logger, logging.DEBUG, "debounce_suppressed_voice_active", chars=len(text))
                return
            self._arm()

    def _arm(self) -> None:
        self._debouncer.schedule(self._on_debounce_expired)
        if self._status is not TranslationStatus.DEBOUNCING:
            self._status = TranslationStatus.DEBOUNCING
            self._publish()

    def _on_debounce_expired(self) -> None:
        with self._lock:
            text = self._source_text
            if not text.strip():
                return
            req = TranslationRequest(
                source_text=text,
                source_lang=self._source_lang,
                target_lang=self._target_lang,
            )
            generation = self.generation.next()
            self._target_text = ""
            self._error = None
            self._status = TranslationStatus.STREAMING
            self._publish()
        log_event(
            self.logger,
            logging.INFO,
            "translate_cycle_start",
            generation=generation,
            chars=len(text),
            source_lang=req.source_lang,
            target_lang=req.target_lang,
        )
        self._runner(lambda: self._run_cycle(generation, req), "lingoai-translate-worker")

    # -- worker ----------------------------------------------------------------

    def _discard(self, generation: int, stage: str) -> None:
        log_event(self.logger, logging.DEBUG, "stale_generation_discard", generation=generation, stage=stage)

    def _run_cycle(self, generation: int, req: TranslationRequest) -> None:
        stream = None
        try:
            stream = iter(self.service.translate_stream(req))
            chunks = 0
            for chunk in stream:
                with self._lock:
                    if not self.generation.is_current(generation):
                        self._discard(generation, "chunk")
                        return
                    self._target_text += chunk
                    chunks += 1
                    self._publish()

            with self._lock:
                if not self.generation.is_current(generation):
                    self._discard(generation, "stream_end")
                    return
                if not self._target_text.strip():
                    raise MalformedResponseError("empty translation response")
                if req.source_lang == AUTO:
                    self._status = TranslationStatus.FINALIZING
                    self._publish()

            if req.source_lang == AUTO:
                result = self.service.translate(req)
                with self._lock:
                    if not self.generation.is_current(generation):
                        self._discard(generation, "detect")
                        return
                    self._detected_language = result.detected_language
                    self._confidence = result.confidence
                    self._publish()

            with self._lock:
                if not self.generation.is_current(generation):
                    self._discard(generation, "finish")
                    return
                self._status = TranslationStatus.SUCCESS
                self._publish()
            log_event(self.logger, logging.INFO, "translate_cycle_done", generation=generation, chunks=chunks)
        except Exception as e:
            with self._lock:
                if not self.generation.is_current(generation):
                    self._discard(generation, "error")
                    return
                self._error = user_message(e)
                self._status = TranslationStatus.ERROR
                self._publish()
            event = "codec_error" if is_codec_error(e) else "translate_cycle_failed"
            self.logger.warning(event, exc_info=True, extra={"generation": generation})
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()

    # -- operations --------------------------------------------------------------

    def swap(self, source_text: str) -> Optional[str]:
        """
        Exchange languages and texts. Returns the new source text, which the
        caller writes back into the source buffer (re-arming the debounce),
        or None when the source language is "auto".
        """
        with self._lock:
            if self._source_lang == AUTO:
                return None
            # Retire any in-flight cycle so its chunks cannot land on the swapped text.
            self._debouncer.cancel()
            self.generation.next()
            if self._status in _IN_FLIGHT:
                self._status = TranslationStatus.IDLE
            self._source_lang, self._target_lang = self._target_lang, self._source_lang
            new_source = self._target_text
            self._source_text = new_source
            self._target_text = source_text
            self._error = None
            self._detected_language = ""
            self._confidence = 0.0
            self._publish()
        log_event(
            self.logger,
            logging.INFO,
            "languages_swapped",
            source_lang=self._source_lang,
            target_lang=self._target_lang,
        )
        return new_source

    def clear(self) -> None:
        with self._lock:
            self._debouncer.cancel()
            self.generation.next()
            self._source_text = ""
            self._reset_output()
            self._status = TranslationStatus.IDLE
            self._publish()

    def set_languages(self, source_lang: Optional[str] = None, target_lang: Optional[str] = None) -> None:
        if target_lang == AUTO:
            raise ValueError("target language cannot be auto")
        with self._lock:
            if source_lang:
                self._source_lang = source_lang
            if target_lang:
                self._target_lang = target_lang
            if self._source_text.strip() and not self.voice_active():
                self._arm()
            else:
                self._publish()

    def on_voice_state_changed(self, active: bool) -> None:
        if active:
            return
        with self._lock:
            if self._source_text.strip():
                self._arm()

    def translate_selection(self, text: str, target_lang: str) -> str:
        """One-shot translation of a snippet; never touches the display state."""
        try:
            result = self.service.translate(
                TranslationRequest(source_text=text, source_lang=AUTO, target_lang=target_lang)
            )
        except Exception:
            self.logger.warning("selection_translate_failed", exc_info=True)
            return "Error translating selection."
        return result.translated_text
