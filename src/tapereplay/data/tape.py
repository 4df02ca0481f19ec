"""Tape (time & sales) parsing.

Input is the CSV export of a single trading day, newest print first:

    日付,時間,約定値,出来高
    2025/12/05,15:30:00,258,"230,400"
    2025/12/05,15:29:59,257,100

Rows keep input order (descending in time). Callers that need chronological
order reverse the list themselves.
"""

from __future__ import annotations

import csv
import math
import re
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from tapereplay.errors import ParseError
from tapereplay.logging import get_logger

log = get_logger("tapereplay.tape")

# Header labels are matched as case-insensitive substrings; one alias per column is enough.
DEFAULT_HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "date": ("日付", "date"),
    "time": ("時間", "時刻", "time"),
    "price": ("約定値", "price"),
    "volume": ("出来高", "volume"),
}

_DECIMALS = re.compile(r"\.(\d*)")


@dataclass(frozen=True)
class TapeRecord:
    """One print. `millisecond` stays None until assign_milliseconds() runs."""

    date: str
    time: str
    price: float
    volume: float
    price_decimal_places: int = 0
    millisecond: Optional[int] = None

    def epoch_seconds(self) -> Optional[int]:
        """Whole-second Unix time, reading the tape's wall clock as UTC fields."""
        return epoch_seconds(self.date, self.time)

    def instant_ms(self) -> Optional[int]:
        s = self.epoch_seconds()
        if s is None:
            return None
        return s * 1000 + (self.millisecond or 0)


def split_ymd(date: str) -> Optional[Tuple[int, int, int]]:
    parts = date.strip().split("/")
    if len(parts) != 3:
        return None
    try:
        y, m, d = (int(p) for p in parts)
    except ValueError:
        return None
    return y, m, d


def split_hms(time: str) -> Optional[Tuple[int, int, int]]:
    parts = time.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        h, m, s = (int(p) for p in parts)
    except ValueError:
        return None
    return h, m, s


def epoch_seconds(date: str, time: str) -> Optional[int]:
    ymd = split_ymd(date)
    hms = split_hms(time)
    if ymd is None or hms is None:
        return None
    try:
        dt = datetime(*ymd, *hms, tzinfo=timezone.utc)
    except ValueError:
        return None
    return int(dt.timestamp())


def decimal_places(raw: str) -> int:
    m = _DECIMALS.search(raw)
    return len(m.group(1)) if m else 0


def _to_number(raw: str) -> Optional[float]:
    s = raw.replace('"', "").replace(",", "").strip()
    if not s:
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def _missing_labels(header: str, aliases: Mapping[str, Sequence[str]]) -> List[str]:
    h = header.lower()
    return [col for col, names in aliases.items() if not any(n.lower() in h for n in names)]


def _split_row(line: str) -> Optional[List[str]]:
    try:
        return next(csv.reader([line]), [])
    except csv.Error:
        return None


def parse_tape(text: str, header_aliases: Optional[Mapping[str, Sequence[str]]] = None) -> List[TapeRecord]:
    """Parse tape text into records, in input order.

    Rows with fewer than four fields or a non-numeric price/volume are dropped
    without error. Raises ParseError when the input is too short, the header
    lacks a required column, or no row survives.
    """
    aliases = header_aliases or DEFAULT_HEADER_ALIASES
    lines = [ln.strip().lstrip("\ufeff") for ln in (text or "").splitlines()]
    lines = [ln for ln in lines if ln]
    if len(lines) < 2:
        raise ParseError("tape needs a header line and at least one data row")

    missing = _missing_labels(lines[0], aliases)
    if missing:
        raise ParseError(f"tape header is missing required columns: {', '.join(missing)}")

    out: List[TapeRecord] = []
    skipped = 0
    for line in lines[1:]:
        fields = _split_row(line)
        if fields is None or len(fields) < 4:
            skipped += 1
            continue
        date, time, raw_price, raw_volume = (f.strip() for f in fields[:4])
        price = _to_number(raw_price)
        volume = _to_number(raw_volume)
        if price is None or volume is None:
            skipped += 1
            continue
        out.append(
            TapeRecord(
                date=date,
                time=time,
                price=price,
                volume=volume,
                price_decimal_places=decimal_places(raw_price),
            )
        )

    if not out:
        raise ParseError("tape has no valid data rows")
    log.debug("tape parsed", extra={"rows": len(out), "skipped": skipped})
    return out


def assign_milliseconds(ticks: Sequence[TapeRecord]) -> List[TapeRecord]:
    """Spread prints that share a whole second evenly across that second.

    Within a group of n prints (input order, newest first) the print at
    position i gets floor(1000 * (n - 1 - i) / n): the oldest gets 0, the
    newest the largest offset. Prints with an unreadable time are left as is.
    """
    groups: Dict[Tuple[str, int, int, int], List[int]] = defaultdict(list)
    for i, t in enumerate(ticks):
        hms = split_hms(t.time)
        if hms is None:
            continue
        groups[(t.date.strip(), *hms)].append(i)

    out = list(ticks)
    for idxs in groups.values():
        n = len(idxs)
        for pos, i in enumerate(idxs):
            out[i] = replace(out[i], millisecond=(1000 * (n - 1 - pos)) // n)
    return out
