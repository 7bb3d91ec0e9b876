"""Step-indexed playback of a tourist's recorded trace.

The animator advances a cursor on a cooperative scheduler. Anything with an
``asyncio``-style ``call_later(delay, callback)`` returning a cancellable
handle will do. At most one advance is ever pending. Each scheduled callback
carries the generation it was scheduled under and does nothing once the
animator has moved on (cancelled, restarted or released), so a queued advance
can never touch a disposed cursor.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence, Union

from tourist_safety.conditions import EmptyTrace
from tourist_safety.models import Tourist, TracePoint

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 1.5


class Cancellable(Protocol):
    def cancel(self) -> Any:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable:
        ...


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass
class PlaybackCursor:
    tourist_id: Optional[str]
    trace: Sequence[TracePoint]
    index: int = 0
    running: bool = False

    @property
    def last_index(self) -> int:
        return len(self.trace) - 1

    @property
    def current(self) -> TracePoint:
        return self.trace[self.index]


class TraceAnimator:
    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._scheduler = scheduler
        self.interval = interval
        self.state = PlaybackState.IDLE
        self.cursor: Optional[PlaybackCursor] = None
        self._handle: Optional[Cancellable] = None
        self._generation = 0

    def __enter__(self) -> "TraceAnimator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    @property
    def index(self) -> Optional[int]:
        return self.cursor.index if self.cursor else None

    @property
    def has_pending_advance(self) -> bool:
        return self._handle is not None

    def select(self, tourist: Tourist) -> Union[PlaybackCursor, EmptyTrace]:
        """Bind a tourist's trace without starting it."""
        self.release()
        if not tourist.trace:
            return EmptyTrace(tourist_id=tourist.tourist_id)
        self.cursor = PlaybackCursor(tourist_id=tourist.tourist_id, trace=tourist.trace)
        return self.cursor

    def start(
        self, trace: Sequence[TracePoint], tourist_id: Optional[str] = None
    ) -> Union[PlaybackCursor, EmptyTrace]:
        self.release()
        if not trace:
            return EmptyTrace(tourist_id=tourist_id)

        self.cursor = PlaybackCursor(tourist_id=tourist_id, trace=trace)
        logger.info("Playback started for %s (%d samples)", tourist_id or "trace", len(trace))
        self._play()
        return self.cursor

    def pause(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            return
        self._cancel_pending()
        self._set_state(PlaybackState.PAUSED)

    def resume(self) -> None:
        if self.state is not PlaybackState.PAUSED:
            return
        self._play()

    def step_forward(self) -> None:
        if self.cursor and self.cursor.index < self.cursor.last_index:
            self.cursor.index += 1

    def step_backward(self) -> None:
        if self.cursor and self.cursor.index > 0:
            self.cursor.index -= 1

    def cancel(self) -> None:
        self._cancel_pending()
        self._set_state(PlaybackState.IDLE)

    def release(self) -> None:
        self.cancel()
        self.cursor = None

    def _play(self) -> None:
        if self.cursor.index >= self.cursor.last_index:
            self._set_state(PlaybackState.IDLE)
            logger.info("Playback finished for %s", self.cursor.tourist_id or "trace")
            return
        self._set_state(PlaybackState.PLAYING)
        self._schedule()

    def _schedule(self) -> None:
        self._cancel_pending()
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._handle = scheduler.call_later(self.interval, self._advance, self._generation)

    def _advance(self, generation: int) -> None:
        if generation != self._generation or self.state is not PlaybackState.PLAYING:
            return
        self._handle = None
        self.cursor.index = min(self.cursor.index + 1, self.cursor.last_index)
        logger.debug("Playback advanced to %d/%d", self.cursor.index, self.cursor.last_index)
        self._play()

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _set_state(self, state: PlaybackState) -> None:
        self.state = state
        if self.cursor:
            self.cursor.running = state is PlaybackState.PLAYING
