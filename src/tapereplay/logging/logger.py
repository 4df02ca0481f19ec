from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, TextIO

# attributes every LogRecord carries; anything else arrived through `extra=`
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


@dataclass(frozen=True)
class LogConfig:
    level: str = "info"
    json: bool = False
    to_file: Optional[str] = None
    utc: bool = True

    @property
    def levelno(self) -> int:
        lvl = logging.getLevelName(self.level.strip().upper())
        return lvl if isinstance(lvl, int) else logging.INFO

    @staticmethod
    def from_dict(d: Optional[Mapping[str, Any]]) -> "LogConfig":
        d = d or {}
        return LogConfig(
            level=str(d.get("level") or "info"),
            json=bool(d.get("json", False)),
            to_file=str(d["to_file"]) if d.get("to_file") else None,
            utc=bool(d.get("utc", True)),
        )


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS and not k.startswith("_")}


class _JsonFormatter(logging.Formatter):
    """JSON lines: ts/level/name/msg plus whatever the call passed as `extra=`."""

    def __init__(self, utc: bool = True):
        super().__init__()
        self.tz = timezone.utc if utc else None

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=self.tz).isoformat(),
            "level": record.levelname.lower(),
            "name": record.name,
            "msg": record.getMessage(),
        }
        for k, v in _extras(record).items():
            doc.setdefault(k, v)
        if record.exc_info:
            doc["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(doc, ensure_ascii=False, default=str)


class _PlainFormatter(logging.Formatter):
    """Human format; `extra=` fields are appended as key=value."""

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def _handlers(cfg: LogConfig, stream: Optional[TextIO]) -> Iterator[logging.Handler]:
    yield logging.StreamHandler(stream)
    if cfg.to_file:
        path = Path(cfg.to_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        yield logging.FileHandler(path, encoding="utf-8")


def setup_logging(cfg: LogConfig, stream: Optional[TextIO] = None) -> None:
    """Install fresh root handlers (stderr unless `stream`, plus `to_file`)."""
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(cfg.levelno)

    fmt = _JsonFormatter(utc=cfg.utc) if cfg.json else _PlainFormatter()
    for h in _handlers(cfg, stream):
        h.setLevel(cfg.levelno)
        h.setFormatter(fmt)
        root.addHandler(h)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
