from __future__ import annotations

from typing import Callable, List

from lingoai.live.cancellation import StreamGeneration
from lingoai.live.debounce import Debouncer


class _FakeTimer:
    def __init__(self, interval: float, fn: Callable[[], None]) -> None:
        self.interval = interval
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True


class _Timers:
    def __init__(self) -> None:
        self.made: List[_FakeTimer] = []

    def factory(self, interval: float, fn: Callable[[], None]) -> _FakeTimer:
        t = _FakeTimer(interval, fn)
        self.made.append(t)
        return t


def test_generation_next_invalidates_older() -> None:
    token = StreamGeneration()
    g1 = token.next()
    assert token.is_current(g1)
    g2 = token.next()
    assert g2 > g1
    assert not token.is_current(g1)
    assert token.is_current(g2)
    assert token.current == g2


def test_debouncer_restart_cancels_previous() -> None:
    timers = _Timers()
    calls: list[str] = []
    d = Debouncer(0.3, timer_factory=timers.factory)
    d.schedule(calls.append, "a")
    d.schedule(calls.append, "ab")
    assert len(timers.made) == 2
    assert timers.made[0].cancelled
    assert timers.made[1].interval == 0.3
    assert d.pending
    timers.made[1].fn()
    assert calls == ["ab"]
    assert not d.pending


def test_debouncer_ignores_fire_from_superseded_timer() -> None:
    timers = _Timers()
    calls: list[str] = []
    d = Debouncer(0.3, timer_factory=timers.factory)
    d.schedule(calls.append, "old")
    d.schedule(calls.append, "new")
    # Timer.cancel() cannot stop a callback that is already running.
    timers.made[0].fn()
    assert calls == []


def test_debouncer_cancel() -> None:
    timers = _Timers()
    calls: list[str] = []
    d = Debouncer(0.5, timer_factory=timers.factory)
    d.schedule(calls.append, "x")
    d.cancel()
    timers.made[0].fn()
    assert calls == []
    assert not d.pending
