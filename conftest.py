from __future__ import annotations

import pytest

from tourist_safety.snapshot import load_snapshot


class ManualHandle:
    def __init__(self, when: float, callback, args) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Simulated clock with the ``call_later`` surface of an asyncio loop.

    With ``honor_cancel=False`` cancelled callbacks still fire, which is how a
    leaked timer behaves.
    """

    def __init__(self, honor_cancel: bool = True) -> None:
        self.now = 0.0
        self.honor_cancel = honor_cancel
        self._queue: list[ManualHandle] = []

    def call_later(self, delay: float, callback, *args) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback, args)
        self._queue.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [h for h in self._queue if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self._queue if h.when <= target and (not h.cancelled or not self.honor_cancel)]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._queue.remove(handle)
            self.now = handle.when
            handle.callback(*handle.args)
        self.now = target


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def snapshot():
    return load_snapshot()
