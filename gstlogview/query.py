"""Query execution over a Ready session: filtered pages and distinct field values."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Sequence

from gstlogview.errors import IngestionFailed, InvalidFilter, SessionNotFound
from gstlogview.filters import Predicate
from gstlogview.models import Level, Record
from gstlogview.store import Session, SessionState, SessionStore

logger = logging.getLogger(__name__)


@dataclass
class Page:
    entries: list[Record]
    total: int
    page: int
    per_page: int
    total_pages: int


@dataclass
class DistinctValues:
    levels: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    pids: list[int] = field(default_factory=list)
    threads: list[str] = field(default_factory=list)
    objects: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "levels": list(self.levels),
            "categories": list(self.categories),
            "pids": list(self.pids),
            "threads": list(self.threads),
            "objects": list(self.objects),
        }


def resolve_ready(store: SessionStore, session_id: str) -> Session:
    """Look up a session that is safe to query.

    Unknown and still-Pending sessions raise SessionNotFound (callers retry);
    a Failed session raises IngestionFailed with the parser's reason.
    """
    session = store.get(session_id)
    if session.state is SessionState.PENDING:
        raise SessionNotFound(
            f"Session {session_id} is still being processed"
        )
    if session.state is SessionState.FAILED:
        raise IngestionFailed(session.error or "Log ingestion failed")
    return session


def filter_records(records: Sequence[Record], predicate: Predicate) -> list[Record]:
    """Matching records in original order."""
    return [r for r in records if predicate(r)]


def total_pages_for(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page))


def list_entries(records: Sequence[Record], predicate: Predicate,
                 page: int = 1, per_page: int = 100) -> Page:
    """Filter, count and slice. `page` and `per_page` are 1-based.

    A page past the end yields no entries rather than an error.
    """
    if page < 1:
        raise InvalidFilter(f"page must be >= 1, got {page}")
    if per_page < 1:
        raise InvalidFilter(f"per_page must be >= 1, got {per_page}")

    start_time = time.perf_counter()
    matched = filter_records(records, predicate)
    total = len(matched)
    start = (page - 1) * per_page
    entries = matched[start:start + per_page]

    logger.debug(
        "Filtered %d/%d records in %.3fs; page %d holds %d",
        total, len(records), time.perf_counter() - start_time, page, len(entries),
    )
    return Page(
        entries=entries,
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages_for(total, per_page),
    )


def distinct_values(records: Sequence[Record]) -> DistinctValues:
    """One pass over the unfiltered dataset collecting each enumerable field."""
    levels: set[Level] = set()
    categories: set[str] = set()
    pids: set[int] = set()
    threads: set[str] = set()
    objects: set[str] = set()

    for record in records:
        if record.level is not None:
            levels.add(record.level)
        if record.category is not None:
            categories.add(record.category)
        if record.pid is not None:
            pids.add(record.pid)
        if record.thread is not None:
            threads.add(record.thread)
        if record.object is not None:
            objects.add(record.object)

    return DistinctValues(
        levels=[level.name for level in sorted(levels)],
        categories=sorted(categories),
        pids=sorted(pids),
        threads=sorted(threads),
        objects=sorted(objects),
    )


class QueryExecutor:
    """Resolves sessions by id and runs listing queries against them."""

    def __init__(self, store: SessionStore):
        self._store = store

    def list(self, session_id: str, predicate: Predicate,
             page: int = 1, per_page: int = 100) -> Page:
        session = resolve_ready(self._store, session_id)
        return list_entries(session.records, predicate, page, per_page)

    def matching(self, session_id: str, predicate: Predicate) -> list[Record]:
        """Full matching subset, for aggregation."""
        session = resolve_ready(self._store, session_id)
        return filter_records(session.records, predicate)

    def distinct_values(self, session_id: str) -> DistinctValues:
        session = resolve_ready(self._store, session_id)
        return distinct_values(session.records)
