from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol

from lingoai.contracts import TextOrigin
from lingoai.edit.history import HISTORY_LIMIT, EditHistory
from lingoai.live.debounce import Debouncer, TimerFactory, daemon_timer

SOURCE_TEXT_KEY = "lingoai_source_text"

TextListener = Callable[[str, TextOrigin], None]


class Store(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class SourceTextBuffer:
    """
    Single intake path for the source text.

    Every change is tagged with a TextOrigin. Typing and voice transcripts are
    committed to the edit history once the text has been quiet for
    `quiet_sec`; values replayed from the history are never re-recorded.
    """

    def __init__(
        self,
        *,
        store: Optional[Store] = None,
        quiet_sec: float = 0.5,
        history_limit: int = HISTORY_LIMIT,
        timer_factory: TimerFactory = daemon_timer,
        logger: logging.Logger | None = None,
    ) -> None:
        self.history = EditHistory("", limit=history_limit)
        self.store = store
        self.mode = "text"
        self.last_saved: Optional[datetime] = None
        self.logger = logger or logging.getLogger("lingoai.edit.buffer")
        self._text = ""
        self._lock = threading.RLock()
        self._commit = Debouncer(quiet_sec, timer_factory=timer_factory)
        self._listeners: List[TextListener] = []

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    def add_listener(self, listener: TextListener) -> None:
        self._listeners.append(listener)

    def _notify(self, text: str, origin: TextOrigin) -> None:
        for listener in list(self._listeners):
            listener(text, origin)

    def _persist(self, text: str) -> None:
        if self.store is None or self.mode != "text":
            return
        try:
            self.store.set(SOURCE_TEXT_KEY, text)
        except OSError:
            self.logger.exception("persist_source_text_failed")
            return
        self.last_saved = datetime.now() if text else None

    def set_text(self, text: str, origin: TextOrigin = TextOrigin.USER_EDIT) -> None:
        with self._lock:
            if text == self._text:
                return
            self._text = text
            self._persist(text)
            if origin is TextOrigin.HISTORY_REPLAY:
                self._commit.cancel()
            else:
                self._commit.schedule(self._commit_history)
        self._notify(text, origin)

    def append_transcript(self, fragment: str) -> None:
        fragment = (fragment or "").strip()
        if not fragment:
            return
        with self._lock:
            current = self._text
            joined = f"{current} {fragment}" if current else fragment
            self.set_text(joined, TextOrigin.VOICE_TRANSCRIPT)

    def _commit_history(self) -> None:
        with self._lock:
            self.history.push(self._text)

    def flush_history(self) -> None:
        """Commit a pending quiet-period snapshot immediately."""
        with self._lock:
            if not self._commit.pending:
                return
            self._commit.cancel()
            self.history.push(self._text)

    def undo(self) -> Optional[str]:
        with self._lock:
            self.flush_history()
            value = self.history.undo()
            if value is None:
                return None
            self.set_text(value, TextOrigin.HISTORY_REPLAY)
            return value

    def redo(self) -> Optional[str]:
        with self._lock:
            self.flush_history()
            value = self.history.redo()
            if value is None:
                return None
            self.set_text(value, TextOrigin.HISTORY_REPLAY)
            return value

    def restore(self) -> Optional[str]:
        """Load the persisted source text as the single initial history entry."""
        if self.store is None:
            return None
        saved = self.store.get(SOURCE_TEXT_KEY)
        if not saved or not isinstance(saved, str):
            return None
        with self._lock:
            self._commit.cancel()
            self._text = saved
            self.history.reset(saved)
            self.last_saved = datetime.now()
        self.logger.info("source_text_restored", extra={"chars": len(saved)})
        self._notify(saved, TextOrigin.HISTORY_REPLAY)
        return saved

    def clear(self) -> None:
        self.set_text("", TextOrigin.USER_EDIT)
        if self.store is not None:
            self.store.remove(SOURCE_TEXT_KEY)
        self.last_saved = None
