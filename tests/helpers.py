"""Tape builders and a manual scheduler shared by the test modules."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Sequence, Tuple

HEADER = "日付,時間,約定値,出来高"

# chronological: 10:00 -> 100,105,102 | 10:01 -> 102,101 | 10:02 -> 103 (doji)
BASIC_ROWS = [
    ("2025/12/05", "10:02:10", "103", "100"),
    ("2025/12/05", "10:01:30", "101", '"1,200"'),
    ("2025/12/05", "10:01:05", "102", "100"),
    ("2025/12/05", "10:00:40", "102", "100"),
    ("2025/12/05", "10:00:20", "105", "100"),
    ("2025/12/05", "10:00:00", "100", '"230,400"'),
]


def epoch(hms: str, date: Tuple[int, int, int] = (2025, 12, 5)) -> int:
    h, m, s = (int(x) for x in hms.split(":"))
    return int(datetime(*date, h, m, s, tzinfo=timezone.utc).timestamp())


def make_tape(rows: Sequence[Sequence[str]], header: str = HEADER) -> str:
    return "\n".join([header] + [",".join(r) for r in rows]) + "\n"


class _Handle:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: nothing fires until the test calls fire()."""

    def __init__(self):
        self.handles: List[_Handle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Handle:
        h = _Handle(delay, callback)
        self.handles.append(h)
        return h

    @property
    def pending(self) -> List[_Handle]:
        return [h for h in self.handles if not h.cancelled]

    def fire(self) -> bool:
        pending = self.pending
        if not pending:
            return False
        h = pending[0]
        self.handles.remove(h)
        h.callback()
        return True

    def run(self, limit: int = 100_000) -> int:
        n = 0
        while n < limit and self.fire():
            n += 1
        return n

