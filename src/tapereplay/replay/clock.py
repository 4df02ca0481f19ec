"""Virtual clock math.

The scrubber position (`seek`, 0..100) is the only stored notion of "now".
It maps onto bar timestamps by linear interpolation: with n bars, seek s sits
at fractional index (n - 1) * s / 100 and the clock reads the time that far
between bar[i] and bar[i + 1].

Timestamps here are Unix seconds (float) for the seek mapping and integer
milliseconds for everything the session steps through.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

MINUTE_MS = 60_000
DAY_MS = 86_400_000


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


def parse_hms(s: str) -> int:
    """'HH:MM[:SS]' -> seconds since midnight."""
    parts = [int(p) for p in s.strip().split(":")]
    if len(parts) == 2:
        parts.append(0)
    if len(parts) != 3:
        raise ValueError(f"expected HH:MM[:SS], got {s!r}")
    h, m, sec = parts
    if not (0 <= h <= 24 and 0 <= m < 60 and 0 <= sec < 60):
        raise ValueError(f"time of day out of range: {s!r}")
    return h * 3600 + m * 60 + sec


@dataclass(frozen=True)
class LunchWindow:
    """Daily non-trading window, [start_s, end_s) in seconds since midnight."""

    start_s: int = 11 * 3600 + 30 * 60
    end_s: int = 12 * 3600 + 30 * 60

    def __post_init__(self):
        if not (0 <= self.start_s < self.end_s <= 86_400):
            raise ValueError("lunch window must satisfy 0 <= start < end <= 24h")


def clamp_seek(seek: float) -> float:
    """Scrubber value into [0, 100]; NaN and other non-finite input read as 0."""
    if not math.isfinite(seek):
        return 0.0
    return max(0.0, min(100.0, float(seek)))


def index_from_seek(seek: float, bar_count: int) -> float:
    if bar_count <= 0:
        return 0.0
    return (bar_count - 1) * clamp_seek(seek) / 100.0


def bar_index_from_seek(seek: float, bar_count: int) -> int:
    if bar_count <= 0:
        return 0
    return min(int(math.floor(index_from_seek(seek, bar_count))), bar_count - 1)


def timestamp_from_seek(seek: float, times: Sequence[int]) -> Optional[float]:
    n = len(times)
    if n == 0:
        return None
    if n == 1:
        return float(times[0])
    idx = index_from_seek(seek, n)
    i = int(math.floor(idx))
    if i >= n - 1:
        return float(times[-1])
    return times[i] + (idx - i) * (times[i + 1] - times[i])


def seek_from_timestamp(ts: float, times: Sequence[int]) -> float:
    """Inverse of timestamp_from_seek, clamped to [0, 100]."""
    n = len(times)
    if n == 0 or not math.isfinite(ts):
        return 0.0
    if ts <= times[0]:
        return 0.0
    if ts >= times[-1]:
        return 100.0
    i = bisect_right(times, ts) - 1
    span = times[i + 1] - times[i]
    frac = (ts - times[i]) / span if span > 0 else 0.0
    return (i + frac) * 100.0 / (n - 1)


def instant_from_seek(seek: float, times: Sequence[int]) -> Optional[int]:
    ts = timestamp_from_seek(seek, times)
    if ts is None:
        return None
    return int(round(ts * 1000))


def seek_from_instant(ms: int, times: Sequence[int]) -> float:
    return seek_from_timestamp(ms / 1000.0, times)


def skip_lunch_time(
    ms: int,
    direction: Direction = Direction.FORWARD,
    window: Optional[LunchWindow] = LunchWindow(),
) -> int:
    """Move an instant that falls inside the lunch window to its far edge.

    Forward lands on the window end (12:30:00.000), backward on one second
    before the window start (11:29:59.000). Idempotent.
    """
    if window is None:
        return ms
    day = ms - ms % DAY_MS
    tod = ms - day
    if window.start_s * 1000 <= tod < window.end_s * 1000:
        if direction == Direction.FORWARD:
            return day + window.end_s * 1000
        return day + window.start_s * 1000 - 1000
    return ms


def floor_to_minute(ms: int) -> int:
    return ms - ms % MINUTE_MS


def floor_to_second(ms: int) -> int:
    return ms - ms % 1000
