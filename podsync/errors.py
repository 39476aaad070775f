"""Exception types raised by the podsync core."""


class PodsyncError(Exception):
    """Base class for all podsync errors."""


class JobStateError(PodsyncError):
    """Raised when a job is mutated after reaching a terminal state, or moved backwards."""


class SourceNotFoundError(PodsyncError):
    """Raised when a source is unknown or has no URL to scan."""


class UnsupportedUrlError(PodsyncError, ValueError):
    """Raised when a URL cannot be mapped to a supported item or source."""


class CollaboratorTimeoutError(PodsyncError, TimeoutError):
    """Raised when an external call exceeds its per-call timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:g}s")
