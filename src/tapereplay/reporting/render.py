from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from tapereplay.config.settings import ReplaySettings
from tapereplay.data.bars import Bar
from tapereplay.replay.session import ReplayFrame


def format_price(value: float, decimal_places: int) -> str:
    return f"{value:.{max(0, int(decimal_places))}f}"


def format_clock(ms: Optional[int]) -> str:
    """Tape wall clock (UTC fields) with milliseconds, e.g. 2025-12-05 10:15:30.250."""
    if ms is None:
        return "--:--:--.---"
    dt = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S") + f".{ms % 1000:03d}"


def price_format(decimal_places: int) -> Dict[str, Any]:
    dp = max(0, int(decimal_places))
    if dp == 0:
        return {"type": "price", "precision": 0, "minMove": 1}
    return {"type": "price", "precision": dp, "minMove": 10 ** -dp}


def bar_to_chart(bar: Bar) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "time": bar.time,
        "open": bar.open,
        "high": bar.high,
        "low": bar.low,
        "close": bar.close,
    }
    if bar.color is not None:
        out["color"] = bar.color
    if bar.border_color is not None:
        out["borderColor"] = bar.border_color
    if bar.wick_color is not None:
        out["wickColor"] = bar.wick_color
    return out


def chart_payload(
    bars: Sequence[Bar],
    decimal_places: int,
    settings: Optional[ReplaySettings] = None,
) -> Dict[str, Any]:
    """Input for a candlestick widget: ordered bars, price format and colors."""
    s = settings or ReplaySettings()
    return {
        "bars": [bar_to_chart(b) for b in bars],
        "priceFormat": price_format(decimal_places),
        "style": {
            "upColor": s.palette.up,
            "downColor": s.palette.down,
            "wickUpColor": s.palette.up,
            "wickDownColor": s.palette.down,
            "background": s.background,
        },
    }


def _fmt_bar(bar: Optional[Bar], dp: int) -> str:
    if bar is None:
        return "-"
    return "/".join(format_price(v, dp) for v in (bar.open, bar.high, bar.low, bar.close))


def _compact_lines(frame: ReplayFrame) -> List[str]:
    dp = frame.decimal_places
    return [
        f"t={format_clock(frame.instant_ms)} seek={frame.seek:.2f} bars={frame.completed} "
        f"forming={_fmt_bar(frame.forming, dp)} speed={frame.speed:g}x state={frame.state.value}"
    ]


def _pretty_lines(frame: ReplayFrame, max_bars: int) -> List[str]:
    dp = frame.decimal_places
    lines = [
        f"{frame.indicator}  {format_clock(frame.instant_ms)}",
        f"seek {frame.seek:.2f}  speed {frame.speed:g}x  {frame.state.value}",
    ]
    if frame.notice:
        lines.append(f"notice: {frame.notice}")
    tail = frame.bars[-max_bars:] if max_bars > 0 else frame.bars
    for b in tail:
        mark = "*" if frame.forming is not None and b is frame.forming else " "
        lines.append(f"{mark} {format_clock(b.time * 1000)[:16]}  {_fmt_bar(b, dp)}")
    if len(frame.bars) > len(tail):
        lines.append(f"... ({len(frame.bars) - len(tail)} earlier bars)")
    return lines


def render_frame(frame: ReplayFrame, *, fmt: str = "compact", max_bars: int = 10) -> str:
    """Render a frame as text.

    fmt:
      - compact: one status line (default)
      - pretty : status plus the last `max_bars` bars, forming bar marked with '*'
    """
    fmt = (fmt or "compact").strip().lower()
    if fmt == "pretty":
        return "\n".join(_pretty_lines(frame, max_bars))
    return "\n".join(_compact_lines(frame))
