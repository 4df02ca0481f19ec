from helpers import epoch

from tapereplay.data.bars import Bar
from tapereplay.data.doji import Palette
from tapereplay.data.tape import TapeRecord, assign_milliseconds
from tapereplay.replay.forming import forming_bar, tick_instants


def rec(hms, price, date="2025/12/05"):
    return TapeRecord(date=date, time=hms, price=float(price), volume=1.0)


def ms(hms):
    return epoch(hms) * 1000


def test_single_print_builds_flat_bar():
    ticks = assign_milliseconds([rec("10:00:10", 100)])
    b = forming_bar(ms("10:00:30"), ticks)
    assert b.time == epoch("10:00:00")
    assert (b.open, b.high, b.low, b.close) == (100, 100, 100, 100)


def test_none_on_minute_boundary():
    ticks = assign_milliseconds([rec("10:00:00", 100)])
    assert forming_bar(ms("10:00:00"), ticks) is None


def test_none_when_nothing_printed_yet():
    ticks = assign_milliseconds([rec("10:00:40", 100)])
    assert forming_bar(ms("10:00:30"), ticks) is None


def test_millisecond_equality_is_inclusive():
    # three prints in one second get .666 / .333 / .000 in tape order
    ticks = assign_milliseconds([rec("10:00:05", 103), rec("10:00:05", 102), rec("10:00:05", 101)])
    at = ms("10:00:05")
    b = forming_bar(at + 333, ticks)
    assert (b.open, b.close, b.high) == (101, 102, 102)
    b = forming_bar(at + 332, ticks)
    assert (b.open, b.close, b.high) == (101, 101, 101)
    assert forming_bar(at + 666, ticks).close == 103


def test_other_minutes_are_ignored():
    ticks = assign_milliseconds([rec("10:01:05", 200), rec("10:00:50", 100), rec("09:59:59", 50)])
    b = forming_bar(ms("10:00:55"), ticks)
    assert (b.open, b.high, b.low, b.close) == (100, 100, 100, 100)


def test_same_instant_keeps_reversed_tape_order():
    ticks = [rec("10:00:05", 7), rec("10:00:05", 3)]
    instants = [ms("10:00:05"), ms("10:00:05")]
    b = forming_bar(ms("10:00:06"), ticks, instants_ms=instants)
    assert (b.open, b.close) == (3, 7)


def test_precomputed_instants_match_computed():
    ticks = assign_milliseconds([rec("10:00:07", 5), rec("10:00:02", 4)])
    at = ms("10:00:30")
    assert forming_bar(at, ticks) == forming_bar(at, ticks, instants_ms=tick_instants(ticks))


def test_forming_doji_takes_color_from_completed_bars():
    palette = Palette(up="U", down="D")
    done = [Bar(time=epoch("09:59:00"), open=10, high=10, low=8, close=8)]
    ticks = assign_milliseconds([rec("10:00:03", 9)])
    b = forming_bar(ms("10:00:10"), ticks, completed=done, palette=palette)
    assert b.color == "D"
    assert forming_bar(ms("10:00:10"), ticks, palette=palette).color == "U"
