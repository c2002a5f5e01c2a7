"""Custom exception hierarchy for PagePilot."""


class PagePilotError(Exception):
    """Base exception for all PagePilot errors."""


class WaitTimeoutError(PagePilotError):
    """Raised when a wait's time or retry bound is exceeded without success."""

    def __init__(self, message: str, elapsed: float = 0.0, attempts: int = 0) -> None:
        super().__init__(message)
        self.elapsed = elapsed
        self.attempts = attempts


class AuthError(WaitTimeoutError):
    """Raised when authentication polling times out."""


class CancellationError(PagePilotError):
    """Raised when a wait is aborted because the page was torn down."""


class PredicateError(PagePilotError):
    """Raised when a wait predicate or auth evaluator itself raises.

    The original exception is kept as ``__cause__``.
    """


class SurfaceError(PagePilotError):
    """Raised when the embedded browser surface fails to start."""


class PageClosedError(PagePilotError):
    """Raised when an operation needs a page that has already been closed."""


class ConfigurationError(PagePilotError):
    """Raised when settings are invalid or missing."""
