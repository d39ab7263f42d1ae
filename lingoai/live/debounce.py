from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]
Runner = Callable[[Callable[[], None], str], None]


def daemon_timer(interval: float, fn: Callable[[], None]) -> threading.Timer:
    t = threading.Timer(interval, fn)
    t.daemon = True
    return t


def daemon_runner(fn: Callable[[], None], name: str) -> None:
    threading.Thread(target=fn, name=name, daemon=True).start()


class Debouncer:
    """
    Restartable one-shot timer: schedule() cancels any pending call and arms
    a new one, so fn runs only after `delay_sec` without another schedule().
    """

    def __init__(self, delay_sec: float, *, timer_factory: TimerFactory = daemon_timer) -> None:
        if delay_sec < 0:
            raise ValueError("delay_sec must be >= 0")
        self.delay_sec = float(delay_sec)
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[TimerHandle] = None
        self._ticket = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._ticket += 1
            ticket = self._ticket

            def _fire() -> None:
                with self._lock:
                    # A cancelled timer may still fire if it was already running.
                    if ticket != self._ticket:
                        return
                    self._timer = None
                fn(*args)

            self._timer = self._timer_factory(self.delay_sec, _fire)
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._ticket += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
