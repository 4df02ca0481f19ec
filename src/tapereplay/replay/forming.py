from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from tapereplay.data.bars import Bar
from tapereplay.data.doji import DOJI_EPSILON, Palette, doji_palette_before, is_doji, paint
from tapereplay.data.tape import TapeRecord

from .clock import MINUTE_MS


def tick_instants(ticks: Sequence[TapeRecord]) -> List[Optional[int]]:
    return [t.instant_ms() for t in ticks]


def forming_bar(
    current_ms: int,
    ticks: Sequence[TapeRecord],
    *,
    instants_ms: Optional[Sequence[Optional[int]]] = None,
    completed: Sequence[Bar] = (),
    palette: Palette = Palette(),
    epsilon: float = DOJI_EPSILON,
) -> Optional[Bar]:
    """Rebuild the bar of the minute containing `current_ms` from raw ticks.

    Only prints at or before the virtual instant count, using their
    synthetic millisecond (a print in the current second is in when its
    millisecond <= the clock's). `ticks` are in tape order, newest first;
    prints at the same instant keep tape order reversed (older first).

    Returns None exactly on a minute boundary or when no print qualifies.
    `instants_ms` may carry precomputed tick_instants(ticks).
    """
    offset = current_ms % MINUTE_MS
    if offset == 0:
        return None
    bucket_ms = current_ms - offset
    if instants_ms is None:
        instants_ms = tick_instants(ticks)

    picked: List[Tuple[int, int, float]] = []
    for pos, (t, at) in enumerate(zip(ticks, instants_ms)):
        if at is None or at < bucket_ms or at > current_ms:
            continue
        picked.append((at, -pos, t.price))
    if not picked:
        return None

    picked.sort()
    prices = [p for _, _, p in picked]
    bar = Bar(
        time=bucket_ms // 1000,
        open=prices[0],
        high=max(prices),
        low=min(prices),
        close=prices[-1],
    )
    if is_doji(bar, epsilon):
        bar = paint(bar, doji_palette_before(completed, bar.time, palette, epsilon))
    return bar
