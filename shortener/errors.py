"""Error types raised by the link lifecycle engine."""

from typing import Optional


class ShortenerError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadInputError(ShortenerError, ValueError):
    """Malformed URL, code or TTL supplied by the client."""

    status_code = 400


class UnauthorizedError(ShortenerError):
    """Missing or incorrect bearer token."""

    status_code = 401


class NotFoundError(ShortenerError):
    """Code absent or expired."""

    status_code = 404


class ConflictError(ShortenerError):
    """Requested custom code is already taken."""

    status_code = 409


class RateLimitedError(ShortenerError):
    """Client exhausted its token bucket."""

    status_code = 429

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class InternalError(ShortenerError):
    """Store failure, code-space exhaustion or any unexpected condition."""

    status_code = 500
