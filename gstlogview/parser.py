"""GStreamer debug log parser: compiled regex over one line at a time."""

import io
import logging
import re
from itertools import chain
from typing import BinaryIO, Iterable, Iterator

from gstlogview.errors import ParseError
from gstlogview.models import Level, Record

logger = logging.getLogger(__name__)

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

# 0:00:00.123456789  4242 0x55d0c0 DEBUG  GST_PADS gstpad.c:4321:gst_pad_push:<src:pad> msg
LINE_PATTERN = re.compile(
    r"^(?P<ts>\d+:\d{2}:\d{2}\.\d+)\s+"
    r"(?P<pid>\d+)\s+"
    r"(?P<thread>0x[0-9a-fA-F]+)\s+"
    r"(?P<level>[A-Za-z]+)\s+"
    r"(?P<category>\S+)\s+"
    r"(?P<file>[^:\s]+):(?P<line>\d+):(?P<function>(?:[^:\s]|::)*):"
    r"(?:<(?P<object>[^>]*)>)?"
    r"\s?(?P<message>.*)$"
)


def parse_clock(text: str) -> int:
    """Convert an H:MM:SS.fraction clock string to integer nanoseconds."""
    hms, _, frac = text.partition(".")
    hours, minutes, seconds = (int(part) for part in hms.split(":"))
    frac_ns = int(frac[:9].ljust(9, "0")) if frac else 0
    return ((hours * 60 + minutes) * 60 + seconds) * 1_000_000_000 + frac_ns


def parse_line(line: str) -> Record | None:
    """Parse a single debug line into a Record. Returns None for unparseable lines."""
    stripped = ANSI_ESCAPE.sub("", line.rstrip("\r\n"))
    match = LINE_PATTERN.match(stripped)
    if not match:
        return None

    try:
        level = Level.from_name(match.group("level"))
    except ValueError:
        return None

    return Record(
        timestamp=parse_clock(match.group("ts")),
        level=level,
        category=match.group("category"),
        pid=int(match.group("pid")),
        thread=match.group("thread"),
        object=match.group("object"),
        function=match.group("function") or None,
        file=match.group("file"),
        line=int(match.group("line")),
        message=match.group("message"),
    )


def iter_records(lines: Iterable[str]) -> Iterator[Record]:
    """Yield records in source order, skipping lines the grammar doesn't cover."""
    skipped = 0
    for line in lines:
        if not line.strip():
            continue
        record = parse_line(line)
        if record is None:
            skipped += 1
            continue
        yield record
    if skipped:
        logger.info("Skipped %d unparseable lines", skipped)


def decode_lines(stream: BinaryIO) -> Iterator[str]:
    """Decode a binary stream one line at a time. Only b"\\n" ends a line."""
    for raw in stream:
        yield raw.decode("utf-8", errors="replace")


def parse_stream(stream: BinaryIO) -> list[Record]:
    """Parse an uploaded log from a binary file object without loading it whole.

    Raises ParseError if the stream is empty or nothing usable is found.
    """
    first = stream.readline()
    if not first:
        raise ParseError("Uploaded log is empty")

    records = list(iter_records(decode_lines(chain([first], stream))))
    if not records:
        raise ParseError(
            "No GStreamer log entries found; the file may be empty or in an "
            "unsupported format"
        )
    return records


def parse_bytes(data: bytes) -> list[Record]:
    """Parse an in-memory log. Same contract as parse_stream."""
    return parse_stream(io.BytesIO(data))
