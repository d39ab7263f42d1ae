from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from lingoai.app.diagnostics import user_message
from lingoai.app.document import DocumentTranslator, TranslatedDocument
from lingoai.app.services import ClientServices
from lingoai.contracts import AUTO, TextOrigin
from lingoai.edit.buffer import SourceTextBuffer, Store
from lingoai.live.debounce import Runner, TimerFactory, daemon_runner, daemon_timer
from lingoai.live.orchestrator import TranslationOrchestrator
from lingoai.live.speech import Player, SpeechPlayback
from lingoai.live.voice_session import Capture, LiveVoiceSessionManager
from lingoai.service.base import TranslationService, VoiceSessionConfig


class TranslatorClient:
    """
    Wires the source buffer, translation orchestrator, voice session and
    speech playback into the operations a front-end invokes.

    Cross-component coupling: voice transcripts enter through the source
    buffer like typing, so they are recorded in the undo history and re-arm
    the translation debounce; typing alone does not re-arm it while the voice
    session is active.
    """

    def __init__(
        self,
        service: TranslationService,
        *,
        player: Player,
        store: Optional[Store] = None,
        capture_factory: Optional[Callable[[], Capture]] = None,
        source_lang: str = AUTO,
        target_lang: str = "es",
        debounce_sec: float = 0.3,
        history_quiet_sec: float = 0.5,
        history_limit: int = 50,
        capture_sample_rate: int = 16000,
        playback_sample_rate: int = 24000,
        max_send_failures: int = 3,
        timer_factory: TimerFactory = daemon_timer,
        runner: Runner = daemon_runner,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("lingoai.app.client")
        self.buffer = SourceTextBuffer(
            store=store,
            quiet_sec=history_quiet_sec,
            history_limit=history_limit,
            timer_factory=timer_factory,
        )
        self.orchestrator = TranslationOrchestrator(
            service,
            source_lang=source_lang,
            target_lang=target_lang,
            debounce_sec=debounce_sec,
            timer_factory=timer_factory,
            runner=runner,
        )
        self.voice = LiveVoiceSessionManager(
            service,
            self.buffer.append_transcript,
            capture_factory=capture_factory,
            config=VoiceSessionConfig(sample_rate=capture_sample_rate),
            max_send_failures=max_send_failures,
        )
        self.speech = SpeechPlayback(service, player, sample_rate=playback_sample_rate, runner=runner)
        self.documents = DocumentTranslator(service)
        self.document_error: Optional[str] = None
        self.load_error: Optional[str] = None

        self.orchestrator.voice_active = lambda: self.voice.is_active
        self.buffer.add_listener(self.orchestrator.on_text_changed)
        self.voice.add_state_listener(lambda state: self.orchestrator.on_voice_state_changed(state.is_active))

    @classmethod
    def from_args(cls, args: Any, services: ClientServices) -> "TranslatorClient":
        return cls(
            services.service,
            player=services.player,
            store=services.store,
            capture_factory=services.capture_factory,
            source_lang=str(args.source_lang),
            target_lang=str(args.target_lang),
            debounce_sec=max(0, int(args.debounce_ms)) / 1000.0,
            history_quiet_sec=max(0, int(args.history_quiet_ms)) / 1000.0,
            history_limit=max(1, int(args.history_limit)),
            capture_sample_rate=int(args.capture_sr),
            playback_sample_rate=int(args.playback_sr),
            max_send_failures=int(args.max_send_failures),
        )

    # -- text -----------------------------------------------------------------

    def restore(self) -> Optional[str]:
        return self.buffer.restore()

    def type_text(self, text: str) -> None:
        self.buffer.set_text(text, TextOrigin.USER_EDIT)

    def load_text_file(self, path: Path) -> bool:
        """Replace the source text with a UTF-8 file's contents, as one edit."""
        self.load_error = None
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.load_error = user_message(e, fallback="Failed to read file.")
            self.logger.warning("source_load_failed", exc_info=True, extra={"path": str(path)})
            return False
        self.type_text(text)
        return True

    def undo(self) -> Optional[str]:
        return self.buffer.undo()

    def redo(self) -> Optional[str]:
        return self.buffer.redo()

    def swap(self) -> bool:
        new_source = self.orchestrator.swap(self.buffer.text)
        if new_source is None:
            return False
        self.buffer.set_text(new_source, TextOrigin.USER_EDIT)
        return True

    def clear(self) -> None:
        self.buffer.clear()
        self.orchestrator.clear()
        self.document_error = None

    def set_languages(self, source_lang: Optional[str] = None, target_lang: Optional[str] = None) -> None:
        self.orchestrator.set_languages(source_lang, target_lang)

    def translate_selection(self, text: str, target_lang: str = "en") -> str:
        return self.orchestrator.translate_selection(text, target_lang)

    # -- voice / speech ------------------------------------------------------------

    def toggle_voice(self) -> None:
        self.voice.toggle()

    def speak_source(self) -> bool:
        return self.speech.speak(self.buffer.text, surface="source")

    def speak_target(self) -> bool:
        return self.speech.speak(self.orchestrator.snapshot().target_text, surface="target")

    # -- documents --------------------------------------------------------------------

    def translate_document(self, path: Path, output: Optional[Path] = None) -> Optional[Path]:
        snap = self.orchestrator.snapshot()
        self.document_error = None
        self.buffer.mode = "document"
        try:
            doc: TranslatedDocument = self.documents.translate_file(path, snap.source_lang, snap.target_lang)
            return self.documents.save_translation(doc, output)
        except Exception as e:
            self.document_error = user_message(e, fallback="Failed to translate document.")
            self.logger.warning("document_translate_failed", exc_info=True, extra={"path": str(path)})
            return None
        finally:
            self.buffer.mode = "text"

    def shutdown(self) -> None:
        self.voice.stop()
