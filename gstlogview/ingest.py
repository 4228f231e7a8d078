"""Background ingestion: parse an upload and flip its session to Ready or Failed."""

import io
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import BinaryIO, Callable, Sequence, Union

from gstlogview.errors import ParseError
from gstlogview.models import Record
from gstlogview.parser import parse_stream
from gstlogview.store import SessionStore

logger = logging.getLogger(__name__)

Parser = Callable[[BinaryIO], Sequence[Record]]

# Raw bytes, or an open binary file the pipeline takes ownership of
Source = Union[bytes, BinaryIO]


class IngestionPipeline:
    """Runs one parse per session on a worker pool, off the request thread."""

    def __init__(self, store: SessionStore, parser: Parser = parse_stream, max_workers: int = 4):
        self._store = store
        self._parser = parser
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ingest"
        )

    def begin(self, source: Source) -> tuple[str, Future]:
        """Register a Pending session for `source` and schedule its parse."""
        session_id = self._store.create()
        logger.info("Accepted upload for session %s", session_id)
        return session_id, self.submit(session_id, source)

    def submit(self, session_id: str, source: Source) -> Future:
        future = self._executor.submit(self.run, session_id, source)
        future.add_done_callback(
            lambda f: self._report(session_id, f)
        )
        return future

    @staticmethod
    def _report(session_id: str, future: Future) -> None:
        # Nobody joins background futures; make store faults visible.
        error = future.exception()
        if error is not None:
            logger.error(
                "Ingestion for session %s aborted: %s", session_id, error,
                exc_info=(type(error), error, error.__traceback__),
            )

    def run(self, session_id: str, source: Source) -> None:
        """Parse `source` and record the outcome. All-or-nothing per session.

        A file source is closed once parsing finishes, whatever the outcome.
        """
        stream = io.BytesIO(source) if isinstance(source, bytes) else source
        start = time.perf_counter()
        try:
            with stream:
                records = self._parser(stream)
        except ParseError as e:
            logger.warning("Parsing failed for session %s: %s", session_id, e)
            self._store.mark_failed(session_id, str(e))
            return
        except Exception:
            logger.exception("Parser crashed for session %s", session_id)
            self._store.mark_failed(session_id, "Internal error while parsing the log file")
            return

        elapsed = time.perf_counter() - start
        logger.info(
            "Parsed %d entries for session %s in %.3fs",
            len(records), session_id, elapsed,
        )
        self._store.mark_ready(session_id, records)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
