"""Time units and timeline granularities.

Records carry nanosecond timestamps. Clients work in microseconds for the
sub-millisecond granularities and in milliseconds for everything else, so
every conversion from the native unit goes through ``TimeUnit.from_native``.
Conversion only ever runs native -> coarser, never the other way round.
"""

from enum import Enum


class TimeUnit(Enum):
    NANOSECONDS = "ns"
    MICROSECONDS = "us"
    MILLISECONDS = "ms"

    @property
    def nanos(self) -> int:
        return _NANOS_PER_UNIT[self]

    def from_native(self, ns: int) -> int:
        """Convert a native (nanosecond) timestamp to this unit, flooring."""
        return ns // self.nanos

    @classmethod
    def for_client_flag(cls, use_microseconds: bool) -> "TimeUnit":
        return cls.MICROSECONDS if use_microseconds else cls.MILLISECONDS


_NANOS_PER_UNIT = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
}


class Interval(Enum):
    """The fifteen bucket widths a timeline can be drawn at."""

    US_100 = ("100us", 100_000)
    US_250 = ("250us", 250_000)
    US_500 = ("500us", 500_000)
    MS_1 = ("1ms", 1_000_000)
    MS_5 = ("5ms", 5_000_000)
    MS_10 = ("10ms", 10_000_000)
    MS_50 = ("50ms", 50_000_000)
    MS_100 = ("100ms", 100_000_000)
    MS_500 = ("500ms", 500_000_000)
    S_1 = ("1s", 1_000_000_000)
    S_5 = ("5s", 5_000_000_000)
    S_10 = ("10s", 10_000_000_000)
    S_30 = ("30s", 30_000_000_000)
    M_1 = ("1m", 60_000_000_000)
    M_5 = ("5m", 300_000_000_000)

    def __init__(self, label: str, nanos: int):
        self.label = label
        self.nanos = nanos

    @property
    def display_unit(self) -> TimeUnit:
        """Unit the client uses for axis labels and range selections at this width."""
        if self.label.endswith("us"):
            return TimeUnit.MICROSECONDS
        return TimeUnit.MILLISECONDS

    @classmethod
    def from_label(cls, label: str) -> "Interval":
        for interval in cls:
            if interval.label == label:
                return interval
        raise ValueError(f"Unknown interval: {label!r}")

    @classmethod
    def labels(cls) -> list[str]:
        return [interval.label for interval in cls]
