"""tapereplay CLI.

Loads a tape file, positions the virtual clock and prints the chart state:
- --seek / --at place the clock; --reset, --step, --speed adjust it
- --play runs autoplay on an asyncio loop until the end of the tape
- --export_chart writes the widget payload (JSON), --export_bars the bars (CSV)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from tapereplay.config import DEFAULTS, ReplaySettings, load_config
from tapereplay.data.bars import BarSeries
from tapereplay.logging import LogConfig, get_logger, setup_logging
from tapereplay.replay.playback import PlaybackState
from tapereplay.replay.session import ReplayFrame, ReplaySession
from tapereplay.reporting.render import chart_payload, render_frame

log = get_logger("tapereplay.cli")

_AT_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S", "%Y/%m/%d %H:%M:%S.%f", "%Y/%m/%d %H:%M:%S")


def _ensure_dir(p: str) -> None:
    Path(p).parent.mkdir(parents=True, exist_ok=True)


def _parse_at(s: str, day_ms: int) -> int:
    """'HH:MM:SS[.fff]' on the tape's day, or a full date-time; tape clock read as UTC."""
    s = s.strip()
    for fmt in _AT_FORMATS:
        try:
            dt = datetime.strptime(s, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
        return int(round(dt.timestamp() * 1000))
    for fmt in ("%H:%M:%S.%f", "%H:%M:%S"):
        try:
            t = datetime.strptime(s, fmt)
        except ValueError:
            continue
        return day_ms + ((t.hour * 60 + t.minute) * 60 + t.second) * 1000 + t.microsecond // 1000
    raise ValueError(f"cannot parse --at value {s!r}")


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if args.log_level:
        out.setdefault("log", {})["level"] = args.log_level
    if args.log_json:
        out.setdefault("log", {})["json"] = True
    if args.no_lunch_skip:
        out["lunch"] = {"enabled": False}
    return out


async def _play(session: ReplaySession, follow: bool, fmt: str) -> None:
    done = asyncio.Event()
    last_completed = -1

    def _listener(frame: ReplayFrame) -> None:
        nonlocal last_completed
        if follow and frame.completed != last_completed:
            last_completed = frame.completed
            print(render_frame(frame, fmt=fmt), flush=True)
        if frame.state == PlaybackState.STOPPED:
            done.set()

    session.add_listener(_listener)
    try:
        if session.play():
            await done.wait()
    finally:
        session.remove_listener(_listener)
        session.pause()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tapereplay")

    p.add_argument("tape", help="Tape CSV (date,time,price,volume; newest first)")
    p.add_argument("--encoding", default="utf-8-sig", help="Tape file encoding (e.g. cp932)")

    # clock
    p.add_argument("--seek", type=float, default=None, help="Scrubber position 0..100")
    p.add_argument("--at", default="", help="HH:MM:SS[.fff] or full date-time")
    p.add_argument("--speed", type=float, default=None)
    p.add_argument("--reset", default="", help="seconds|subseconds")
    p.add_argument("--step", type=int, default=0, help="N steps forward (negative: back)")
    p.add_argument("--big", action="store_true", help="Steps are x10")
    p.add_argument("--no_lunch_skip", action="store_true")

    # playback
    p.add_argument("--play", action="store_true")
    p.add_argument("--follow", action="store_true", help="Print a line per completed bar while playing")

    # output
    p.add_argument("--fmt", default="compact", help="compact|pretty")
    p.add_argument("--export_chart", default="")
    p.add_argument("--export_bars", default="")

    # logging/config
    p.add_argument("--config", default=os.environ.get("TAPE_CONFIG", ""))
    p.add_argument("--log_level", default=os.environ.get("TAPE_LOG_LEVEL", ""))
    p.add_argument("--log_json", action="store_true")

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(defaults=DEFAULTS, file_path=args.config or None, overrides=_overrides(args))
        settings = ReplaySettings.from_dict(cfg)
    except ValueError as e:
        print(f"bad config: {e}", file=sys.stderr)
        return 2
    setup_logging(LogConfig.from_dict(cfg.get("log")))

    try:
        text = Path(args.tape).read_text(encoding=args.encoding)
    except (OSError, UnicodeDecodeError) as e:
        print(f"cannot read {args.tape}: {e}", file=sys.stderr)
        return 2

    session = ReplaySession(settings)
    if not session.load(text, name=Path(args.tape).name):
        print(f"load failed: {session.notice}", file=sys.stderr)
        return 1
    ds = session.dataset

    if args.speed is not None:
        try:
            session.set_speed(args.speed)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 2

    if args.at:
        day_ms = (ds.time_range.min // 86_400) * 86_400_000
        try:
            at_ms = _parse_at(args.at, day_ms)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 2
        session.seek_to(at_ms)
    elif args.seek is not None:
        session.set_seek(args.seek)

    reset = args.reset.strip().lower()
    if reset == "seconds":
        session.reset_seconds()
    elif reset == "subseconds":
        session.reset_subseconds()

    for _ in range(abs(int(args.step))):
        if args.step > 0:
            session.step_forward(big=args.big)
        else:
            session.step_back(big=args.big)

    if args.play:
        asyncio.run(_play(session, follow=args.follow, fmt=args.fmt))

    frame = session.snapshot()
    print(render_frame(frame, fmt=args.fmt))

    if args.export_chart:
        _ensure_dir(args.export_chart)
        with open(args.export_chart, "w", encoding="utf-8") as f:
            json.dump(chart_payload(frame.bars, frame.decimal_places, settings), f, ensure_ascii=False, indent=2)

    if args.export_bars:
        _ensure_dir(args.export_bars)
        BarSeries.from_bars(frame.bars).to_df().to_csv(args.export_bars, index=False)

    session.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
