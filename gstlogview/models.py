"""Normalized log record: every parsed GStreamer debug line maps to this."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class Level(IntEnum):
    """GStreamer debug severities, ordered by verbosity."""

    NONE = 0
    ERROR = 1
    WARNING = 2
    FIXME = 3
    INFO = 4
    DEBUG = 5
    LOG = 6
    TRACE = 7
    MEMDUMP = 9

    @classmethod
    def from_name(cls, name: str) -> "Level":
        """Look up a level by name, case-insensitive. Accepts GStreamer's WARN alias."""
        normalized = name.strip().upper()
        if normalized == "WARN":
            normalized = "WARNING"
        try:
            return cls[normalized]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None


@dataclass(frozen=True)
class Record:
    timestamp: int  # nanoseconds since pipeline start
    level: Level | None = None
    category: str | None = None
    pid: int | None = None
    thread: str | None = None
    object: str | None = None
    function: str | None = None
    file: str | None = None
    line: int | None = None
    message: str | None = None


@dataclass(frozen=True)
class Bucket:
    timestamp: int  # bucket start, nanoseconds
    count: int


def format_clock(ns: int) -> str:
    """Render nanoseconds the way GStreamer prints clock times: H:MM:SS.nnnnnnnnn."""
    seconds, frac = divmod(ns, 1_000_000_000)
    minutes, secs = divmod(seconds, 60)
    hours, mins = divmod(minutes, 60)
    return f"{hours}:{mins:02d}:{secs:02d}.{frac:09d}"


def record_to_dict(record: Record) -> dict[str, Any]:
    """Convert a Record to a JSON-friendly dict. Absent fields stay as None."""
    return {
        "timestamp": record.timestamp,
        "ts": format_clock(record.timestamp),
        "level": record.level.name if record.level is not None else None,
        "category": record.category,
        "pid": record.pid,
        "thread": record.thread,
        "object": record.object,
        "function": record.function,
        "file": record.file,
        "line": record.line,
        "message": record.message,
    }
