"""Autoplay as a two-state machine (STOPPED <-> PLAYING).

Playback owns the handle of its single pending timer. Every transition
cancels that handle first, so a stopped playback never fires again and a
reload can swap data underneath without a stale callback running.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from tapereplay.logging import get_logger

log = get_logger("tapereplay.playback")


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class AsyncioScheduler:
    """Schedules on the running asyncio loop (or the loop given)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class Playback:
    """Repeating timer driving `advance` every `period_ms`.

    `advance()` returns False when the end of the tape is reached; playback
    then transitions to STOPPED by itself.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        period_ms: int,
        advance: Callable[[], bool],
        on_change: Optional[Callable[[PlaybackState], None]] = None,
    ):
        if period_ms <= 0:
            raise ValueError("period_ms must be > 0")
        self.scheduler = scheduler
        self.period_ms = int(period_ms)
        self._advance = advance
        self._on_change = on_change
        self._state = PlaybackState.STOPPED
        self._handle: Optional[Cancellable] = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def playing(self) -> bool:
        return self._state == PlaybackState.PLAYING

    def start(self) -> bool:
        if self.playing:
            return False
        self._cancel()
        self._transition(PlaybackState.PLAYING)
        self._schedule()
        return True

    def stop(self) -> bool:
        self._cancel()
        if not self.playing:
            return False
        self._transition(PlaybackState.STOPPED)
        return True

    def toggle(self) -> PlaybackState:
        if self.playing:
            self.stop()
        else:
            self.start()
        return self._state

    def _transition(self, state: PlaybackState) -> None:
        self._state = state
        log.debug("playback %s", state.value)
        if self._on_change is not None:
            self._on_change(state)

    def _schedule(self) -> None:
        self._handle = self.scheduler.call_later(self.period_ms / 1000.0, self._fire)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if not self.playing:
            return
        try:
            keep_going = self._advance()
        except Exception:
            self.stop()
            raise
        if not self.playing:
            return
        if keep_going:
            self._schedule()
        else:
            self.stop()
