"""One-minute bar model.

A BarSeries holds bars in strictly increasing `time` order (Unix seconds,
minute aligned). `time` is always an int; the chart layer never sees strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import pandas as pd


@dataclass(frozen=True)
class Bar:
    time: int  # seconds since epoch, tape wall clock read as UTC
    open: float
    high: float
    low: float
    close: float
    color: Optional[str] = None
    border_color: Optional[str] = None
    wick_color: Optional[str] = None

    def __post_init__(self):
        if self.high < max(self.open, self.close):
            raise ValueError("high must be >= open and close")
        if self.low > min(self.open, self.close):
            raise ValueError("low must be <= open and close")

    @property
    def is_up(self) -> bool:
        return self.close > self.open


@dataclass(frozen=True)
class TimeRange:
    min: int
    max: int


class BarSeries:
    def __init__(self, bars: Sequence[Bar]):
        self.bars: List[Bar] = list(bars)
        for a, b in zip(self.bars, self.bars[1:]):
            if b.time <= a.time:
                raise ValueError(f"bar times must be strictly increasing ({a.time} -> {b.time})")
        self._df: Optional[pd.DataFrame] = None

    @staticmethod
    def from_bars(bars: Sequence[Bar]) -> "BarSeries":
        return BarSeries(bars)

    def __len__(self) -> int:
        return len(self.bars)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self.bars)

    def __getitem__(self, i: int) -> Bar:
        return self.bars[i]

    @property
    def times(self) -> List[int]:
        return [b.time for b in self.bars]

    @property
    def time_range(self) -> Optional[TimeRange]:
        if not self.bars:
            return None
        return TimeRange(min=self.bars[0].time, max=self.bars[-1].time)

    @property
    def df(self) -> pd.DataFrame:
        if self._df is None:
            idx = pd.to_datetime([b.time for b in self.bars], unit="s", utc=True)
            self._df = pd.DataFrame(
                {
                    "time": [b.time for b in self.bars],
                    "open": [b.open for b in self.bars],
                    "high": [b.high for b in self.bars],
                    "low": [b.low for b in self.bars],
                    "close": [b.close for b in self.bars],
                    "color": [b.color for b in self.bars],
                },
                index=idx,
            )
        return self._df

    def to_df(self) -> pd.DataFrame:
        return self.df.copy()
