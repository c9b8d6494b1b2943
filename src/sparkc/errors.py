"""
Error types for the sparkc compile driver.

Diagnostics produced by the compiler are data (see sparkc.diagnostics) and are
never raised. The exceptions below describe failures of the driver itself:
a source that cannot be resolved, misuse of a session or driver, an engine
that crashed instead of diagnosing, a cancelled compile, or a malformed
transport record.
"""

from enum import Enum
from typing import Optional


class SparkcError(Exception):
    """Base class for all sparkc errors."""

    pass


class ResolutionFailure(Enum):
    """Reason a resource could not be resolved."""

    UNHANDLED_SCHEME = "unhandled-scheme"
    NOT_FOUND = "not-found"
    FETCH_FAILED = "fetch-failed"


class ResolutionError(SparkcError):
    """Raised when a URI cannot be resolved to source text.

    Attributes:
        reason: Why resolution failed
        uri: The URI that was requested
        detail: Optional extra context (HTTP status, transport error, ...)
    """

    def __init__(self, reason: ResolutionFailure, uri: str, detail: Optional[str] = None):
        self.reason = reason
        self.uri = uri
        self.detail = detail
        message = f"{reason.value}: {uri}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)

    def __reduce__(self):
        # Keep the exception picklable across a worker process boundary
        return (type(self), (self.reason, self.uri, self.detail))


class SessionAlreadyUsedError(SparkcError):
    """Raised when compile() is called a second time on the same session."""

    code = "session-already-used"


class DriverBusyError(SparkcError):
    """Raised when a compile is started while the driver is already compiling."""

    code = "driver-busy"


class EngineError(SparkcError):
    """Raised when the compiler engine raises instead of reporting diagnostics."""

    pass


class CompileCancelledError(SparkcError):
    """Raised when a compile is abandoned because of a timeout or cancel signal.

    The engine invocation itself may still be running in the background.
    """

    pass


class RecordDecodeError(SparkcError):
    """Raised when a transport record does not have the expected shape."""

    pass
