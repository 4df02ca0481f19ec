from helpers import epoch, make_tape

from tapereplay.data.bar_builder import aggregate_ticks
from tapereplay.data.tape import TapeRecord, assign_milliseconds, parse_tape
from tapereplay.reporting.render import format_price


def test_three_ticks_in_one_minute_make_one_bar():
    text = make_tape([
        ("2025/12/05", "10:00:40", "102", "1"),
        ("2025/12/05", "10:00:20", "105", "1"),
        ("2025/12/05", "10:00:00", "100", "1"),
    ])
    res = aggregate_ticks(parse_tape(text))
    assert len(res.bars) == 1
    b = res.bars[0]
    assert (b.open, b.high, b.low, b.close) == (100, 105, 100, 102)
    assert b.time == epoch("10:00:00")


def test_bars_sorted_minute_aligned_and_consistent(basic_tape):
    res = aggregate_ticks(assign_milliseconds(parse_tape(basic_tape)))
    times = res.bars.times
    assert times == sorted(set(times))
    assert all(t % 60 == 0 for t in times)
    for b in res.bars:
        assert b.low <= min(b.open, b.close) <= max(b.open, b.close) <= b.high
    assert res.time_range.min == epoch("10:00:00")
    assert res.time_range.max == epoch("10:02:00")
    assert [(b.open, b.close) for b in res.bars] == [(100, 102), (102, 101), (103, 103)]


def test_decimal_places_is_max_and_formats_back_to_raw():
    raw = ["258.25", "258.5", "258"]
    text = make_tape([("2025/12/05", f"10:00:0{i}", p, "1") for i, p in enumerate(raw)])
    res = aggregate_ticks(parse_tape(text))
    assert res.decimal_places == 2
    assert format_price(258.25, res.decimal_places) == "258.25"


def test_invalid_calendar_dates_are_dropped():
    ticks = [
        TapeRecord(date="2025/02/30", time="10:00:00", price=1.0, volume=1.0, price_decimal_places=3),
        TapeRecord(date="2025/12/05", time="10:00:xx", price=2.0, volume=1.0),
        TapeRecord(date="2025/12/05", time="10:01:00", price=3.0, volume=1.0),
    ]
    res = aggregate_ticks(ticks)
    assert len(res.bars) == 1
    assert res.bars[0].close == 3.0
    assert res.decimal_places == 0


def test_no_usable_ticks_gives_no_bars():
    res = aggregate_ticks([TapeRecord(date="bad", time="10:00:00", price=1.0, volume=1.0)])
    assert res.bars is None
    assert res.time_range is None
    assert aggregate_ticks([]).bars is None


def test_dataframe_view_is_utc_indexed(basic_tape):
    df = aggregate_ticks(parse_tape(basic_tape)).bars.to_df()
    assert list(df["close"]) == [102, 101, 103]
    assert str(df.index.tz) == "UTC"
    assert df.index[0].hour == 10
