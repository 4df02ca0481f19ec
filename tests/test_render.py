from helpers import epoch

from tapereplay.config.settings import ReplaySettings
from tapereplay.data.bars import Bar
from tapereplay.data.doji import Palette
from tapereplay.replay.playback import PlaybackState
from tapereplay.replay.session import ReplayFrame
from tapereplay.reporting.render import (
    chart_payload,
    format_clock,
    format_price,
    price_format,
    render_frame,
)


def test_format_price():
    assert format_price(258.5, 2) == "258.50"
    assert format_price(258.0, 0) == "258"
    assert format_price(1.23456, 4) == "1.2346"


def test_format_clock_uses_tape_wall_clock():
    assert format_clock(epoch("10:15:30") * 1000 + 250) == "2025-12-05 10:15:30.250"
    assert format_clock(None) == "--:--:--.---"


def test_price_format_min_move():
    assert price_format(0) == {"type": "price", "precision": 0, "minMove": 1}
    pf = price_format(2)
    assert pf["precision"] == 2
    assert abs(pf["minMove"] - 0.01) < 1e-12


def test_chart_payload_colors_only_when_set():
    settings = ReplaySettings(palette=Palette(up="U", down="D"), background="black")
    bars = [
        Bar(time=60, open=1, high=2, low=1, close=2),
        Bar(time=120, open=2, high=2, low=2, close=2, color="U", border_color="U", wick_color="U"),
    ]
    out = chart_payload(bars, 1, settings)
    assert out["bars"][0] == {"time": 60, "open": 1, "high": 2, "low": 1, "close": 2}
    assert out["bars"][1]["borderColor"] == "U"
    assert out["bars"][1]["wickColor"] == "U"
    assert out["priceFormat"]["precision"] == 1
    assert out["style"]["upColor"] == "U"
    assert out["style"]["background"] == "black"


def _frame(**kw):
    forming = Bar(time=epoch("10:01:00"), open=102, high=102, low=101, close=101)
    done = Bar(time=epoch("10:00:00"), open=100, high=105, low=100, close=102)
    base = dict(
        instant_ms=epoch("10:01:30") * 1000,
        seek=75.0,
        bars=(done, forming),
        completed=1,
        forming=forming,
        state=PlaybackState.PLAYING,
        speed=2.0,
        indicator="再生中",
        decimal_places=0,
    )
    base.update(kw)
    return ReplayFrame(**base)


def test_compact_line():
    line = render_frame(_frame())
    assert "t=2025-12-05 10:01:30.000" in line
    assert "seek=75.00" in line
    assert "forming=102/102/101/101" in line
    assert "speed=2x" in line
    assert "state=playing" in line


def test_pretty_marks_forming_bar_and_truncates():
    text = render_frame(_frame(notice="bad header"), fmt="pretty", max_bars=1)
    lines = text.splitlines()
    assert lines[0].startswith("再生中")
    assert "notice: bad header" in lines
    assert lines[-2].startswith("* 2025-12-05 10:01")
    assert lines[-1] == "... (1 earlier bars)"
