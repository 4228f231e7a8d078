"""HTTP client for the log viewer API, including the readiness-polling contract."""

import logging
import time

import requests

from gstlogview.errors import (
    IngestionFailed,
    InternalFault,
    InvalidFilter,
    LogViewError,
    ReadinessTimeout,
    SessionNotFound,
)

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10
DEFAULT_DELAY = 1.0


def time_range(min_timestamp=None, max_timestamp=None, use_microseconds=False) -> dict:
    """Query params for a brushed time window, in the unit of the active interval."""
    params = {"use_microseconds": "true" if use_microseconds else "false"}
    if min_timestamp is not None:
        params["min_timestamp"] = int(min_timestamp)
    if max_timestamp is not None:
        params["max_timestamp"] = int(max_timestamp)
    return params


class LogViewClient:
    def __init__(self, base_url: str, http=None, timeout: float = 30.0, sleep=time.sleep):
        self._base_url = base_url.rstrip("/")
        self._http = http or requests.Session()
        self._timeout = timeout
        self._sleep = sleep

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def upload(self, source) -> str:
        """Upload a log file (path or raw bytes) and return its session id."""
        if isinstance(source, (bytes, bytearray)):
            files = {"file": ("upload.log", bytes(source))}
            resp = self._http.post(self._url("/api/upload"), files=files, timeout=self._timeout)
        else:
            with open(source, "rb") as f:
                files = {"file": (str(source), f)}
                resp = self._http.post(self._url("/api/upload"), files=files, timeout=self._timeout)
        return self._json_or_raise(resp)["session_id"]

    def wait_for_options(self, session_id: str, attempts: int = DEFAULT_ATTEMPTS,
                         delay: float = DEFAULT_DELAY) -> dict:
        """Poll filter-options until the session is Ready.

        404s, other error statuses and connection errors are retried up to
        `attempts` times, `delay` seconds apart. A Failed ingestion stops
        immediately with IngestionFailed; running out of attempts raises
        ReadinessTimeout.
        """
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                resp = self._http.get(
                    self._url("/api/filter-options"),
                    params={"session_id": session_id},
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                last_error = str(e)
            else:
                if resp.status_code == 200:
                    return resp.json()
                body = _safe_json(resp)
                if resp.status_code == 422 and body.get("state") == "failed":
                    raise IngestionFailed(body.get("error", "Log ingestion failed"))
                last_error = body.get("error") or f"HTTP {resp.status_code}"

            logger.debug(
                "Session %s not ready (attempt %d/%d): %s",
                session_id, attempt, attempts, last_error,
            )
            if attempt < attempts:
                self._sleep(delay)

        raise ReadinessTimeout(
            f"Session {session_id} not ready after {attempts} attempts: {last_error}"
        )

    def logs(self, session_id: str, page: int = 1, per_page: int = 100, **filters) -> dict:
        params = {"session_id": session_id, "page": page, "per_page": per_page}
        params.update(_filter_params(filters))
        resp = self._http.get(self._url("/api/logs"), params=params, timeout=self._timeout)
        return self._json_or_raise(resp)

    def timeline(self, session_id: str, interval: str = "1s", **filters) -> dict:
        params = {"session_id": session_id, "interval": interval}
        params.update(_filter_params(filters))
        resp = self._http.get(self._url("/api/timeline"), params=params, timeout=self._timeout)
        return self._json_or_raise(resp)

    def _json_or_raise(self, resp) -> dict:
        if resp.status_code == 200:
            return resp.json()
        message = _safe_json(resp).get("error") or f"HTTP {resp.status_code}"
        raise _ERRORS_BY_STATUS.get(resp.status_code, LogViewError)(message)


_ERRORS_BY_STATUS = {
    400: InvalidFilter,
    404: SessionNotFound,
    422: IngestionFailed,
    500: InternalFault,
}


def _filter_params(filters: dict) -> dict:
    """Drop unset filters; requests sends list values as repeated params."""
    params = {}
    for key, value in filters.items():
        if value is None:
            continue
        if key == "categories":
            params[key] = list(value)
        elif isinstance(value, bool):
            params[key] = "true" if value else "false"
        else:
            params[key] = value
    return params


def _safe_json(resp) -> dict:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
