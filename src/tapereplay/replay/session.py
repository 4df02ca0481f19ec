"""Replay session: the one owner of mutable replay state.

Holds the loaded tape(s), the seek value, the speed multiplier and the
playback machine. Everything shown on screen is derived from those through
the pure functions in tapereplay.replay.clock / tapereplay.replay.forming.
Listeners get a fresh ReplayFrame after every state change.
"""

from __future__ import annotations

import itertools
from bisect import bisect_left
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from tapereplay.config.settings import ReplaySettings
from tapereplay.data.bars import Bar
from tapereplay.errors import TapeError
from tapereplay.logging import get_logger
from tapereplay.pipeline import TapeDataset, load_tape

from .clock import (
    Direction,
    clamp_seek,
    floor_to_minute,
    floor_to_second,
    instant_from_seek,
    seek_from_instant,
    skip_lunch_time,
)
from .forming import forming_bar
from .playback import AsyncioScheduler, Playback, PlaybackState, Scheduler

log = get_logger("tapereplay.session")

INDICATOR_READY = "準備中"
INDICATOR_PLAYING = "再生中"
INDICATOR_STOPPED = "停止中"
INDICATOR_STEP_BACK = "コマ戻し"
INDICATOR_STEP_FORWARD = "コマ送り"


@dataclass(frozen=True)
class ReplayFrame:
    """What the chart shows at one moment."""

    instant_ms: Optional[int]
    seek: float
    bars: Tuple[Bar, ...]
    completed: int
    forming: Optional[Bar]
    state: PlaybackState
    speed: float
    indicator: str
    decimal_places: int
    notice: Optional[str] = None


@dataclass
class _FileState:
    dataset: TapeDataset
    seek: float = 0.0


Listener = Callable[[ReplayFrame], None]


class ReplaySession:
    def __init__(self, settings: Optional[ReplaySettings] = None, scheduler: Optional[Scheduler] = None):
        self.settings = settings or ReplaySettings()
        self.playback = Playback(
            scheduler or AsyncioScheduler(),
            self.settings.tick_period_ms,
            advance=self._advance_playback,
            on_change=self._on_playback_change,
        )
        self.dataset: Optional[TapeDataset] = None
        self.seek_value: float = 0.0
        self.speed: float = self.settings.default_speed
        self.indicator: str = INDICATOR_READY
        self.notice: Optional[str] = None
        self._files: Dict[str, _FileState] = {}
        self._active: Optional[str] = None
        self._names = itertools.count(1)
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------ files

    def load(self, text: str, name: Optional[str] = None) -> bool:
        """Load a tape and make it active.

        On failure the previously loaded tape, seek value and playback state
        are left untouched and `notice` carries the reason.
        """
        try:
            ds = load_tape(text, self.settings)
        except TapeError as e:
            self.notice = str(e)
            log.warning("tape load failed: %s", e, extra={"file": name})
            self._emit()
            return False

        self.playback.stop()
        self._save_seek()
        key = name or f"tape-{next(self._names)}"
        self._files[key] = _FileState(dataset=ds)
        self._activate(key)
        self.notice = None
        self.indicator = INDICATOR_READY
        self._emit()
        return True

    def select(self, name: str) -> None:
        if name not in self._files:
            raise KeyError(f"no tape loaded under {name!r}")
        self.playback.stop()
        self._save_seek()
        self._activate(name)
        self._emit()

    def files(self) -> List[str]:
        return list(self._files)

    @property
    def active_name(self) -> Optional[str]:
        return self._active

    def _save_seek(self) -> None:
        if self._active is not None:
            self._files[self._active].seek = self.seek_value

    def _activate(self, name: str) -> None:
        st = self._files[name]
        self._active = name
        self.dataset, self.seek_value = st.dataset, st.seek

    # ------------------------------------------------------------ clock

    @property
    def has_data(self) -> bool:
        return self.dataset is not None and len(self.dataset.bars) > 0

    @property
    def current_ms(self) -> Optional[int]:
        if not self.has_data:
            return None
        return instant_from_seek(self.seek_value, self.dataset.times)

    def _set_instant(self, ms: int) -> None:
        self.seek_value = seek_from_instant(ms, self.dataset.times)

    def set_seek(self, value: float) -> None:
        if not self.has_data:
            return
        self.seek_value = clamp_seek(float(value))
        self._emit()

    def seek_to(self, ms: int) -> None:
        """Jump the clock to an instant; outside the tape it clamps to 0 / 100."""
        if not self.has_data:
            return
        self._set_instant(int(ms))
        self._emit()

    def set_speed(self, speed: float) -> None:
        speed = float(speed)
        if speed not in self.settings.speeds:
            raise ValueError(f"speed {speed} not in {self.settings.speeds}")
        self.speed = speed
        self._emit()

    def _step(self, seconds: int, direction: Direction) -> None:
        if not self.has_data:
            return
        delta = int(round(seconds * 1000 * self.speed))
        if direction == Direction.BACKWARD:
            delta = -delta
        ms = skip_lunch_time(self.current_ms + delta, direction, self.settings.lunch)
        self._set_instant(ms)
        self.indicator = INDICATOR_STEP_FORWARD if direction == Direction.FORWARD else INDICATOR_STEP_BACK
        self._emit()

    def step_forward(self, big: bool = False) -> None:
        self._step(10 if big else 1, Direction.FORWARD)

    def step_back(self, big: bool = False) -> None:
        self._step(10 if big else 1, Direction.BACKWARD)

    def reset_seconds(self) -> None:
        if not self.has_data:
            return
        self._set_instant(floor_to_minute(self.current_ms))
        self._emit()

    def reset_subseconds(self) -> None:
        if not self.has_data:
            return
        self._set_instant(floor_to_second(self.current_ms))
        self._emit()

    # ------------------------------------------------------------ playback

    def play(self) -> bool:
        if not self.has_data:
            return False
        return self.playback.start()

    def pause(self) -> bool:
        return self.playback.stop()

    def toggle_play(self) -> PlaybackState:
        if self.playback.playing:
            self.pause()
        else:
            self.play()
        return self.playback.state

    def _advance_playback(self) -> bool:
        if not self.has_data:
            return False
        delta = int(round(self.playback.period_ms * self.speed))
        ms = skip_lunch_time(self.current_ms + delta, Direction.FORWARD, self.settings.lunch)
        if ms > self.dataset.time_range.max * 1000:
            self.seek_value = 100.0
            return False
        self._set_instant(ms)
        self._emit()
        return True

    def _on_playback_change(self, state: PlaybackState) -> None:
        self.indicator = INDICATOR_PLAYING if state == PlaybackState.PLAYING else INDICATOR_STOPPED
        self._emit()

    def close(self) -> None:
        self.playback.stop()
        self._listeners.clear()

    # ------------------------------------------------------------ display

    def snapshot(self) -> ReplayFrame:
        ms = self.current_ms
        completed: List[Bar] = []
        forming: Optional[Bar] = None
        if self.has_data and ms is not None:
            bars = self.dataset.bars.bars
            if self.seek_value >= 100.0:
                completed = list(bars)
            else:
                bucket = floor_to_minute(ms) // 1000
                completed = bars[: bisect_left(self.dataset.times, bucket)]
                ticks, instants = self.dataset.minute_ticks(bucket)
                forming = forming_bar(
                    ms,
                    ticks,
                    instants_ms=instants,
                    completed=completed,
                    palette=self.settings.palette,
                    epsilon=self.settings.doji_epsilon,
                )
        shown = tuple(completed) + ((forming,) if forming is not None else ())
        return ReplayFrame(
            instant_ms=ms,
            seek=self.seek_value,
            bars=shown,
            completed=len(completed),
            forming=forming,
            state=self.playback.state,
            speed=self.speed,
            indicator=self.indicator,
            decimal_places=self.dataset.decimal_places if self.dataset else 0,
            notice=self.notice,
        )

    def display_bars(self) -> List[Bar]:
        return list(self.snapshot().bars)

    def add_listener(self, fn: Listener) -> None:
        self._listeners.append(fn)

    def remove_listener(self, fn: Listener) -> None:
        if fn in self._listeners:
            self._listeners.remove(fn)

    def _emit(self) -> None:
        if not self._listeners:
            return
        frame = self.snapshot()
        for fn in list(self._listeners):
            fn(frame)
