from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd

from tapereplay.logging import get_logger

from .bars import Bar, BarSeries, TimeRange
from .tape import TapeRecord

log = get_logger("tapereplay.bars")

BAR_SECONDS = 60


@dataclass(frozen=True)
class AggregationResult:
    bars: Optional[BarSeries]
    decimal_places: int
    time_range: Optional[TimeRange]


def minute_start(epoch_s: int) -> int:
    return epoch_s - epoch_s % BAR_SECONDS


def aggregate_ticks(ticks: Sequence[TapeRecord]) -> AggregationResult:
    """Group ticks into one-minute OHLC bars.

    Expects ticks in tape order (newest first) and walks them oldest first, so
    the first print of a minute is its open and the last one its close. The
    tape's date/time fields are read as UTC so the chart shows the literal
    exchange clock. Ticks with an unreadable date/time are dropped.
    """
    rows = []
    decimals = 0
    dropped = 0
    for t in reversed(ticks):
        s = t.epoch_seconds()
        if s is None:
            dropped += 1
            continue
        decimals = max(decimals, t.price_decimal_places)
        rows.append((minute_start(s), t.price))

    if not rows:
        log.debug("no bars built", extra={"ticks": len(ticks), "dropped": dropped})
        return AggregationResult(bars=None, decimal_places=decimals, time_range=None)

    df = pd.DataFrame(rows, columns=["bucket", "price"])
    px = df.groupby("bucket", sort=True)["price"]
    out = pd.DataFrame(
        {
            "open": px.first(),
            "high": px.max(),
            "low": px.min(),
            "close": px.last(),
        }
    )
    series = BarSeries.from_bars(
        [
            Bar(time=int(ts), open=float(r.open), high=float(r.high), low=float(r.low), close=float(r.close))
            for ts, r in zip(out.index, out.itertuples(index=False))
        ]
    )
    log.debug(
        "bars built",
        extra={"ticks": len(ticks), "dropped": dropped, "bars": len(series), "decimals": decimals},
    )
    return AggregationResult(bars=series, decimal_places=decimals, time_range=series.time_range)
