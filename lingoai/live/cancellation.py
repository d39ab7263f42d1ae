from __future__ import annotations

import threading


class StreamGeneration:
    """
    Monotonic generation counter used to invalidate stale async work.

    Work captures the generation returned by next() and checks is_current()
    before every observable mutation; on a mismatch it exits silently.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0

    @property
    def current(self) -> int:
        with self._lock:
            return self._current

    def next(self) -> int:
        with self._lock:
            self._current += 1
            return self._current

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._current
