"""Timeline aggregation: bucket matching records by a fixed interval."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from gstlogview.filters import Predicate
from gstlogview.models import Bucket, Record
from gstlogview.query import QueryExecutor
from gstlogview.timeunits import Interval, TimeUnit

logger = logging.getLogger(__name__)


@dataclass
class Timeline:
    interval: Interval
    buckets: list[Bucket] = field(default_factory=list)
    min_timestamp: int | None = None  # native ns, of the matching records
    max_timestamp: int | None = None

    @property
    def total(self) -> int:
        return sum(b.count for b in self.buckets)

    def to_dict(self, unit: TimeUnit | None = None) -> dict:
        """Serialize with timestamps in `unit` (the interval's display unit by default)."""
        unit = unit or self.interval.display_unit
        return {
            "interval": self.interval.label,
            "unit": unit.value,
            "buckets": [
                {"timestamp": unit.from_native(b.timestamp), "count": b.count}
                for b in self.buckets
            ],
            "min_timestamp": unit.from_native(self.min_timestamp or 0),
            "max_timestamp": unit.from_native(self.max_timestamp or 0),
        }


def bucket_key(timestamp: int, interval: Interval) -> int:
    """Start of the interval window `timestamp` falls in, in native units."""
    return (timestamp // interval.nanos) * interval.nanos


def bucketize(records: Iterable[Record], interval: Interval) -> Timeline:
    """Count records per bucket. Only buckets with at least one record are emitted."""
    counts = Counter()
    lo = hi = None
    for record in records:
        ts = record.timestamp
        counts[bucket_key(ts, interval)] += 1
        if lo is None or ts < lo:
            lo = ts
        if hi is None or ts > hi:
            hi = ts

    return Timeline(
        interval=interval,
        buckets=[Bucket(timestamp=k, count=c) for k, c in sorted(counts.items())],
        min_timestamp=lo,
        max_timestamp=hi,
    )


def aggregate(records: Iterable[Record], predicate: Predicate, interval: Interval) -> list[Bucket]:
    return bucketize((r for r in records if predicate(r)), interval).buckets


class TimelineAggregator:
    """Session-aware entry point; shares the query executor's session resolution."""

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    def aggregate(self, session_id: str, predicate: Predicate, interval: Interval) -> Timeline:
        matched = self._executor.matching(session_id, predicate)
        timeline = bucketize(matched, interval)
        logger.debug(
            "Timeline for %s at %s: %d records in %d buckets",
            session_id, interval.label, len(matched), len(timeline.buckets),
        )
        return timeline
