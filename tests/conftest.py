"""Shared fakes for driving the supervisor and session deterministically."""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

import pytest

from services.supervisor import Target, TransportListener


class FakeTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Virtual clock implementing ``call_later``; time only moves on ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback, args)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [timer for timer in self._timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        deadline = self.now + seconds
        while True:
            due = [timer for timer in self.pending if timer.when <= deadline]
            if not due:
                break
            timer = min(due, key=lambda item: item.when)
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = deadline


class FakeTransport:
    def __init__(self) -> None:
        self.target: Optional[Target] = None
        self.listener: Optional[TransportListener] = None
        self.closed = False

    def open(self, target: Target, listener: TransportListener) -> None:
        self.target = target
        self.listener = listener

    def close(self) -> None:
        self.closed = True


class TransportFactory:
    def __init__(self) -> None:
        self.created: List[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = FakeTransport()
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def transports() -> TransportFactory:
    return TransportFactory()
