"""
Exceptions raised by the OpenCost and exchange-rate HTTP clients.
"""


class FetchError(Exception):
    """Base exception for upstream fetch errors."""

    pass


class TransportError(FetchError):
    """Connection, timeout or read failure talking to the upstream."""

    pass


class UpstreamStatusError(FetchError):
    """Upstream answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(FetchError):
    """Response body was not valid JSON or did not match the expected shape."""

    pass


class FetchCancelledError(FetchError):
    """The caller's deadline passed or the fetch was cancelled."""

    pass


class RetriesExhaustedError(FetchError):
    """All retry attempts failed; wraps the last underlying error."""

    def __init__(self, retries: int, last_error: Exception):
        super().__init__(f"after {retries} retries: {last_error}")
        self.retries = retries
        self.attempts = retries + 1
        self.last_error = last_error
