"""Filter choices for a session, computed once after it becomes Ready."""

import logging
import threading

from gstlogview.query import DistinctValues, QueryExecutor

logger = logging.getLogger(__name__)


class FilterOptions:
    """Caches distinct values per session; a Ready dataset never changes."""

    def __init__(self, executor: QueryExecutor):
        self._executor = executor
        self._cache: dict[str, DistinctValues] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> DistinctValues:
        with self._lock:
            cached = self._cache.get(session_id)
        if cached is not None:
            return cached

        values = self._executor.distinct_values(session_id)
        logger.debug(
            "Filter options for %s: %d categories, %d levels, %d pids, %d threads, %d objects",
            session_id, len(values.categories), len(values.levels),
            len(values.pids), len(values.threads), len(values.objects),
        )
        with self._lock:
            self._cache.setdefault(session_id, values)
        return values
