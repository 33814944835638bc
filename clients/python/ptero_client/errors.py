"""Error types for the Pterodactyl client."""

from typing import Optional


class PteroError(Exception):
    """Base exception for Pterodactyl client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def is_retryable(self) -> bool:
        return False


class ConfigurationError(PteroError):
    """Raised when the panel URL or API token is missing or blank."""

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")


class TransportError(PteroError):
    """Raised when the request could not reach the server (timeout, reset, TLS)."""

    def __init__(self, message: str):
        super().__init__(f"Transport error: {message}")

    def is_retryable(self) -> bool:
        return True


class HttpError(PteroError):
    """Raised for HTTP error responses."""

    def __init__(self, status: int, message: str, body: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {message}")

    def is_retryable(self) -> bool:
        return self.status >= 500


class ServerError(HttpError):
    """Raised when the server kept answering with a 5xx status after all retries."""


class ApplicationError(HttpError):
    """Raised for 4xx responses other than rate limiting (not found, validation, ...)."""


class RateLimitedError(PteroError):
    """Raised when a quota window is active and the caller refused to wait.

    Attributes:
        retry_after: Seconds until the rate limit window is expected to reset.
    """

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Rate limited. Retry after {retry_after:.3f}s.")

    def is_retryable(self) -> bool:
        return True


class CombinatorError(PteroError):
    """Raised when a map/flat_map/on_execute computation or a recovery fails.

    The exception raised by the computation is chained as ``__cause__``.
    When a recovery for an earlier failure breaks, that earlier failure is
    kept as ``original``.
    """

    def __init__(self, message: str, original: Optional[BaseException] = None):
        self.original = original
        super().__init__(message)


class LockTimeoutError(PteroError):
    """Raised when shared limiter state could not be locked in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Could not acquire lock in a reasonable timeframe! ({timeout:g} seconds)"
        )


class SessionClosedError(PteroError):
    """Raised for work submitted to, or still queued on, a closed session."""

    def __init__(self):
        super().__init__("Session is closed and no longer accepting requests.")
