"""Exception taxonomy shared by the engine and the HTTP layer."""


class LogViewError(Exception):
    """Base class for every error raised by gstlogview."""


class SessionNotFound(LogViewError):
    """Session id unknown, or its dataset is not ready yet. Retry later."""


class IngestionFailed(LogViewError):
    """The parser rejected the upload. The session is terminal; re-upload."""


class InvalidFilter(LogViewError):
    """Malformed filter or pagination parameter. Fails the request only."""


class InternalFault(LogViewError):
    """Store invariant violated (e.g. a second transition). A programming error."""


class ParseError(LogViewError):
    """Raised by the log parser when the input holds no usable entries."""


class ReadinessTimeout(LogViewError):
    """Client gave up polling before the session became ready."""
