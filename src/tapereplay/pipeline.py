"""Single load path: text -> ticks -> milliseconds -> bars -> doji colors."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from tapereplay.config.settings import ReplaySettings
from tapereplay.data.bar_builder import aggregate_ticks
from tapereplay.data.bars import BarSeries, TimeRange
from tapereplay.data.doji import colorize_dojis
from tapereplay.data.tape import TapeRecord, assign_milliseconds, parse_tape
from tapereplay.errors import AggregationError
from tapereplay.logging import get_logger
from tapereplay.replay.forming import tick_instants

log = get_logger("tapereplay.pipeline")


@dataclass(frozen=True)
class TapeDataset:
    """Everything derived from one tape. Built once, never mutated."""

    ticks: Tuple[TapeRecord, ...]
    bars: BarSeries
    decimal_places: int
    time_range: TimeRange
    instants_ms: Tuple[Optional[int], ...]
    by_minute: Mapping[int, Tuple[int, ...]]

    @property
    def times(self) -> List[int]:
        return self.bars.times

    def minute_ticks(self, bucket_start: int) -> Tuple[List[TapeRecord], List[Optional[int]]]:
        """Ticks of one minute (tape order) with their instants."""
        idxs = self.by_minute.get(bucket_start, ())
        return [self.ticks[i] for i in idxs], [self.instants_ms[i] for i in idxs]


def _index_by_minute(instants: Sequence[Optional[int]]) -> Dict[int, Tuple[int, ...]]:
    out: Dict[int, List[int]] = defaultdict(list)
    for i, at in enumerate(instants):
        if at is not None:
            out[(at // 60_000) * 60].append(i)
    return {k: tuple(v) for k, v in out.items()}


def load_tape(text: str, settings: Optional[ReplaySettings] = None) -> TapeDataset:
    """Run the whole pipeline. Raises ParseError / AggregationError."""
    settings = settings or ReplaySettings()
    ticks = assign_milliseconds(parse_tape(text, settings.header_aliases))

    agg = aggregate_ticks(ticks)
    if agg.bars is None or agg.time_range is None or len(agg.bars) == 0:
        raise AggregationError("no one-minute bars could be built from the tape")

    bars = BarSeries.from_bars(colorize_dojis(agg.bars, settings.palette, settings.doji_epsilon))
    instants = tuple(tick_instants(ticks))
    ds = TapeDataset(
        ticks=tuple(ticks),
        bars=bars,
        decimal_places=agg.decimal_places,
        time_range=agg.time_range,
        instants_ms=instants,
        by_minute=_index_by_minute(instants),
    )
    log.info(
        "tape loaded",
        extra={
            "ticks": len(ds.ticks),
            "bars": len(bars),
            "decimals": ds.decimal_places,
            "from": ds.time_range.min,
            "to": ds.time_range.max,
        },
    )
    return ds
