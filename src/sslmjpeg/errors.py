"""Error types raised by sslmjpeg.

Every failure of an ``open`` call reaches the caller as exactly one of these.
Foreign exceptions (httpx, ssl, OS errors) are wrapped with the original
exception chained as ``__cause__``.
"""

from typing import Optional


class MjpegError(Exception):
    """Base class for all sslmjpeg errors."""


class InvalidArgumentError(MjpegError, ValueError):
    """Bad or missing configuration (unknown variant, non-https URL, ...)."""


class CookieParseError(InvalidArgumentError):
    """A cookie string could not be parsed."""

    def __init__(self, cookie: str, reason: str):
        super().__init__(f"Invalid cookie {cookie!r}: {reason}")
        self.cookie = cookie
        self.reason = reason


class SecurityInitError(MjpegError):
    """The TLS context or trust manager could not be set up."""


class TransportError(MjpegError):
    """Network or I/O failure while opening or reading the connection.

    Attributes:
        url: URL of the failed connection, when known
        status_code: HTTP status code when the server answered with an error
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PeerVerificationError(TransportError):
    """The server certificate or hostname was rejected by the trust policy."""


class ConnectTimeoutError(MjpegError, TimeoutError):
    """A bounded ``open`` did not complete within its deadline."""

    def __init__(self, url: str, timeout: float):
        super().__init__(f"Connection to {url} timed out after {timeout}s")
        self.url = url
        self.timeout = timeout


class InvariantViolation(MjpegError, RuntimeError):
    """Internal state that should be unreachable."""
