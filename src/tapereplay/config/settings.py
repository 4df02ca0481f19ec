"""Typed replay settings built from the layered config dict."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from tapereplay.data.doji import DOJI_EPSILON, Palette
from tapereplay.data.tape import DEFAULT_HEADER_ALIASES
from tapereplay.replay.clock import LunchWindow, parse_hms

SPEED_OPTIONS: Tuple[float, ...] = (0.1, 1.0, 2.0, 3.0, 5.0, 10.0, 30.0, 60.0)

DEFAULTS: Dict[str, Any] = {
    "playback": {
        "tick_period_ms": 100,
        "speeds": list(SPEED_OPTIONS),
        "default_speed": 1.0,
    },
    "lunch": {"enabled": True, "start": "11:30:00", "end": "12:30:00"},
    "doji": {"epsilon": DOJI_EPSILON},
    "style": {
        "up_color": "#26a69a",
        "down_color": "#ef5350",
        "background": "white",
    },
    "tape": {"headers": {k: list(v) for k, v in DEFAULT_HEADER_ALIASES.items()}},
    "log": {"level": "info", "json": False},
}


@dataclass(frozen=True)
class ReplaySettings:
    tick_period_ms: int = 100
    speeds: Tuple[float, ...] = SPEED_OPTIONS
    default_speed: float = 1.0
    lunch: Optional[LunchWindow] = field(default_factory=LunchWindow)
    doji_epsilon: float = DOJI_EPSILON
    palette: Palette = field(default_factory=Palette)
    background: str = "white"
    header_aliases: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_HEADER_ALIASES)
    )

    def __post_init__(self):
        if self.tick_period_ms <= 0:
            raise ValueError("tick_period_ms must be > 0")
        if not self.speeds:
            raise ValueError("speeds must not be empty")
        if self.default_speed not in self.speeds:
            raise ValueError(f"default_speed {self.default_speed} not in speeds {self.speeds}")
        if self.doji_epsilon <= 0:
            raise ValueError("doji epsilon must be > 0")

    @staticmethod
    def from_dict(cfg: Optional[Mapping[str, Any]]) -> "ReplaySettings":
        cfg = cfg or {}
        pb = cfg.get("playback", {}) or {}
        lunch = cfg.get("lunch", {}) or {}
        style = cfg.get("style", {}) or {}
        headers = (cfg.get("tape", {}) or {}).get("headers") or DEFAULT_HEADER_ALIASES

        window: Optional[LunchWindow] = None
        if bool(lunch.get("enabled", True)):
            window = LunchWindow(
                start_s=parse_hms(str(lunch.get("start", "11:30:00"))),
                end_s=parse_hms(str(lunch.get("end", "12:30:00"))),
            )

        up = str(style.get("up_color", "#26a69a"))
        down = str(style.get("down_color", "#ef5350"))
        return ReplaySettings(
            tick_period_ms=int(pb.get("tick_period_ms", 100)),
            speeds=tuple(float(x) for x in pb.get("speeds", SPEED_OPTIONS)),
            default_speed=float(pb.get("default_speed", 1.0)),
            lunch=window,
            doji_epsilon=float((cfg.get("doji", {}) or {}).get("epsilon", DOJI_EPSILON)),
            palette=Palette(up=up, down=down),
            background=str(style.get("background", "white")),
            header_aliases={str(k): tuple(str(a) for a in v) for k, v in dict(headers).items()},
        )
