"""Doji coloring.

A doji (open == close within DOJI_EPSILON) has no direction of its own, so it
borrows the up/down color of the nearest earlier non-doji bar. Lookback only;
a leading doji gets the up color.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .bars import Bar

DOJI_EPSILON = 1e-4


@dataclass(frozen=True)
class Palette:
    up: str = "#26a69a"
    down: str = "#ef5350"


def is_doji(bar: Bar, epsilon: float = DOJI_EPSILON) -> bool:
    return abs(bar.open - bar.close) < epsilon


def paint(bar: Bar, color: str) -> Bar:
    return replace(bar, color=color, border_color=color, wick_color=color)


def _inherited(prev: Optional[Bar], palette: Palette) -> str:
    if prev is None or prev.is_up:
        return palette.up
    return palette.down


def colorize_dojis(bars: Sequence[Bar], palette: Palette = Palette(), epsilon: float = DOJI_EPSILON) -> List[Bar]:
    out: List[Bar] = []
    last_directional: Optional[Bar] = None
    for b in bars:
        if is_doji(b, epsilon):
            out.append(paint(b, _inherited(last_directional, palette)))
            continue
        last_directional = b
        out.append(b)
    return out


def doji_palette_before(
    bars: Sequence[Bar],
    bucket_start: int,
    palette: Palette = Palette(),
    epsilon: float = DOJI_EPSILON,
) -> str:
    """Color a doji starting at `bucket_start` would inherit from `bars`."""
    for b in reversed(bars):
        if b.time >= bucket_start or is_doji(b, epsilon):
            continue
        return _inherited(b, palette)
    return palette.up
