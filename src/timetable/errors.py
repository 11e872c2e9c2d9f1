"""Error hierarchy for the campus portal timetable client.

Transient failures (the whole pipeline may succeed if re-run) are kept apart
from permanent failures (re-running will not help without a code or
configuration change). The core never retries; callers that want resilience
re-invoke the whole pipeline on TransientError, see runner.fetch_timetable.
"""


class TimetableError(Exception):
    """Base exception for all timetable client errors."""

    pass


class TransientError(TimetableError):
    """Temporary failure that may succeed when the pipeline is re-run.

    Examples: connection resets, timeouts, truncated responses.
    """

    pass


class TransportError(TransientError):
    """An HTTP navigation step failed before a response body was read.

    The originating requests exception is attached as __cause__.
    """

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")


class PermanentError(TimetableError):
    """Failure that won't succeed on retry.

    Examples: portal markup changed, credentials rejected, empty feed.
    """

    pass


class AuthenticationError(PermanentError):
    """The login POST returned a non-success status."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"login failed with status {status_code}")


class DiscoveryError(PermanentError):
    """A structural element could not be located in a portal page.

    `what` names the missing piece (e.g. "ajax-token", "_flowExecutionKey").
    """

    def __init__(self, what: str, message: str | None = None) -> None:
        self.what = what
        super().__init__(message or f"could not locate {what}")


class EmptyFeedError(PermanentError):
    """The calendar feed downloaded fine but contained no usable events.

    For this portal an empty feed means a wrong export URL or a stale session,
    never a legitimately empty timetable.
    """

    pass


class SessionStateError(PermanentError):
    """An operation was invoked out of navigation order (e.g. fetch before login)."""

    pass
