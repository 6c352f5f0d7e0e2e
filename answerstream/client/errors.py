"""
Error types for streaming requests.

Only the transport-level failures reach the caller (through ``on_error``).
``MalformedRecord`` is raised and caught inside the record decoder; a bad
record is protocol noise, not a failure of the request.
"""


class MalformedRecord(ValueError):
    """A ``data:`` record whose payload is not a usable delta envelope."""


class StreamError(Exception):
    """Base class for failures surfaced through ``on_error``.

    Attributes:
        partial_content: Everything that streamed before the failure, so the
            caller can still show a truncated answer
    """

    def __init__(self, message: str, partial_content: str = ""):
        super().__init__(message)
        self.partial_content = partial_content


class StreamTimeout(StreamError):
    """No bytes arrived within the configured inactivity timeout."""


class NetworkFailure(StreamError):
    """The connection could not be opened or broke mid-stream."""


class StreamProcessingError(StreamError):
    """Handling the stream raised unexpectedly, for example inside a callback.

    The original exception is chained as ``__cause__``.
    """


class ServerError(StreamError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, partial_content: str = "", body: str = ""):
        super().__init__(f"Server error: HTTP {status}", partial_content)
        self.status = status
        self.body = body


class ConfigError(ValueError):
    """Invalid, empty or unreadable configuration file."""
